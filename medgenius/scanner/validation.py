from medgenius.scanner.exceptions import (
    EmptyFile,
    FileTooLarge,
    InvalidFileType,
    NoFileSelected,
)
from medgenius.scanner.models import ReportFile, ScannerPolicy


def validate_file(file: ReportFile | None, policy: ScannerPolicy) -> ReportFile:
    """Check a selected file against the policy before anything else happens.

    Raises:
        NoFileSelected: if file is None.
        InvalidFileType: if the media type is not allowed.
        EmptyFile: if the file has no content.
        FileTooLarge: if the file exceeds the size limit.
    """
    if file is None:
        raise NoFileSelected("Please select a medical image or report to upload")
    if file.media_type not in policy.allowed_media_types:
        raise InvalidFileType(
            f"Invalid file type '{file.media_type}'. Only JPEG, PNG, DICOM, and PDF are allowed."
        )
    if file.size == 0:
        raise EmptyFile(f"{file.name} is empty")
    if file.size > policy.max_file_bytes:
        limit_mb = policy.max_file_bytes / (1024 * 1024)
        raise FileTooLarge(
            f"{file.name} is {file.size / (1024 * 1024):.1f}MB. Max: {limit_mb:.0f}MB"
        )
    return file
