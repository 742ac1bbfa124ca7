import argparse
import json
import sys
from pathlib import Path

from api.database import SessionLocal, init_db
from api.services import backup_service, import_service
from api.services.import_service import ImportFormat
from core.logging_setup import setup_console_logging
from errors import FormatError, StudyError

setup_console_logging()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import, export and back up the question bank")
    commands = parser.add_subparsers(dest="command", required=True)

    import_cmd = commands.add_parser("import", help="Import a question file")
    import_cmd.add_argument("file", type=Path, help="Path to .zip, .json, .xlsx, .csv, .docx or .txt")
    import_cmd.add_argument(
        "--format",
        choices=[f.value for f in ImportFormat],
        default=None,
        help="Override format detection",
    )
    import_cmd.add_argument(
        "--subject",
        type=int,
        default=None,
        help="File every question under this existing subject id",
    )

    export_cmd = commands.add_parser("export", help="Export a subject subtree as an archive")
    export_cmd.add_argument("subject", type=int, help="Subject id")
    export_cmd.add_argument("--output", type=Path, default=None, help="Archive path")

    backup_cmd = commands.add_parser("backup", help="Write a full backup document")
    backup_cmd.add_argument("--output", type=Path, default=Path("backup.json"), help="Backup path")

    restore_cmd = commands.add_parser("restore", help="Replace all data with a backup document")
    restore_cmd.add_argument("file", type=Path, help="Backup path")
    return parser.parse_args()


def run(args: argparse.Namespace) -> str:
    init_db()
    db = SessionLocal()
    try:
        if args.command == "import":
            fmt = ImportFormat(args.format) if args.format else None
            report = import_service.import_file(
                db, args.file.name, args.file.read_bytes(), fmt=fmt, target_subject_id=args.subject
            )
            return "\n".join([report.message, *report.logs])
        if args.command == "export":
            output = args.output or Path(f"subject_{args.subject}.zip")
            output.write_bytes(import_service.export_subject(db, args.subject))
            return f"Saved subject {args.subject} to {output}"
        if args.command == "backup":
            args.output.write_text(json_dump(backup_service.export_backup(db)), encoding="utf-8")
            return f"Saved backup to {args.output}"
        try:
            payload = json.loads(args.file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise FormatError(f"Invalid JSON in {args.file.name}: {exc.msg}") from exc
        counts = backup_service.restore_backup(db, payload)
        return "Restored " + ", ".join(f"{key}: {n}" for key, n in counts.items())
    finally:
        db.close()


def main() -> None:
    args = parse_args()
    try:
        print(run(args))
    except StudyError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        sys.exit(1)


def json_dump(payload: dict[str, object]) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


if __name__ == "__main__":
    main()
