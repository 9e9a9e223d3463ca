import argparse
import sys
from pathlib import Path

from medgenius.analysis.models import DocumentResult, ImageResult, health_band
from medgenius.config.settings import Settings
from medgenius.logging.logger import Log
from medgenius.scanner.exceptions import ValidationError
from medgenius.scanner.models import JobSnapshot, Outcome, ReportFile, UploadJob
from medgenius.scanner.orchestrator import build_orchestrator


def render_job(job: UploadJob) -> str:
    """Plain-text view of a finished job."""
    lines = [f"File: {job.file.name}", f"Outcome: {job.outcome.value}"]
    if job.error is not None:
        lines.append(f"Error: {job.error}")
    result = job.result
    if result is None:
        return "\n".join(lines)

    if result.fallback:
        lines.append("Note: showing a sample analysis, real analysis was unavailable")
    lines.append(f"Health score: {result.health_score} ({health_band(result.health_score)})")
    lines.append(f"Summary: {result.summary}")

    if isinstance(result, DocumentResult):
        for value in result.abnormal_values:
            lines.append(
                f"  ! {value.test}: {value.value} (normal {value.normal_range}) "
                f"[{value.severity}] {value.interpretation}"
            )
        for value in result.normal_values:
            lines.append(f"    {value.test}: {value.value} (normal {value.normal_range})")
    elif isinstance(result, ImageResult):
        for finding in result.findings:
            where = f" at {finding.location}" if finding.location else ""
            lines.append(f"  - {finding.type}{where}: {finding.description}")

    for action in result.recommended_actions:
        lines.append(f"  > [{action.urgency}] {action.description}")
    return "\n".join(lines)


def _log_progress(snapshot: JobSnapshot) -> None:
    Log.info(f"[{snapshot.progress:3d}%] {snapshot.file_name}: {snapshot.stage.value}")


def main(argv: list[str] | None = None) -> int:
    """Entry point: analyse one report file and print the result."""
    parser = argparse.ArgumentParser(
        prog="medgenius-scan",
        description="Analyse a medical report or image.",
    )
    parser.add_argument("path", type=Path, help="PDF, JPEG, PNG or DICOM file")
    parser.add_argument("--media-type", help="override the media type guessed from the extension")
    args = parser.parse_args(argv)

    settings = Settings()
    Log.configure(settings.log_level)

    try:
        report_file = ReportFile.from_path(args.path, args.media_type)
    except OSError as exc:
        print(f"Cannot read {args.path}: {exc}", file=sys.stderr)
        return 2

    orchestrator = build_orchestrator(settings)
    orchestrator.subscribe(_log_progress)
    try:
        job = orchestrator.submit(report_file)
    except ValidationError as exc:
        print(f"Rejected: {exc}", file=sys.stderr)
        return 2
    finally:
        orchestrator.close()

    print(render_job(job))
    return 0 if job.outcome is not Outcome.FAILED else 1


if __name__ == "__main__":
    sys.exit(main())
