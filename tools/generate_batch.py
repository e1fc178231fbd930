import argparse
import base64
import sys
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate one PDF per spreadsheet row from a template."
    )
    parser.add_argument("template", help="模板文件（JSON/YAML）")
    parser.add_argument("spreadsheet", help="数据表格（xlsx/csv）")
    parser.add_argument("mapping", help="列映射文件（JSON/YAML）")
    parser.add_argument(
        "--source-pdf",
        default="",
        help="可选：源文档PDF（第1页作为背景）",
    )
    parser.add_argument(
        "--out-dir",
        default="out",
        help="输出目录（默认：out）",
    )
    parser.add_argument(
        "--best-effort",
        action="store_true",
        help="单行失败时跳过继续（默认整批失败）",
    )
    args = parser.parse_args()

    _add_backend_to_path()
    from docbatch.config import get_config, load_mapping, load_template, setup_logging  # type: ignore
    from docbatch.importer import SpreadsheetImporter  # type: ignore
    from docbatch.interfaces import DocBatchError  # type: ignore
    from docbatch.pipeline import BatchOrchestrator  # type: ignore

    config = get_config()
    setup_logging(config.logging)

    try:
        template = load_template(args.template)
        mapping = load_mapping(args.mapping)
        rows = SpreadsheetImporter().import_rows(Path(args.spreadsheet)).rows

        orchestrator = BatchOrchestrator(config=config)
        runner = orchestrator.generate_best_effort if args.best_effort else orchestrator.generate
        source = Path(args.source_pdf) if args.source_pdf else None
        result = runner(template, rows, mapping, source_document=source)
    except (DocBatchError, FileNotFoundError) as exc:
        print(f"ERROR {exc}")
        return 1

    if not result.success:
        print(result.message)
        return 1

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    for doc in result.documents:
        (out_dir / doc.filename).write_bytes(base64.b64decode(doc.base64))
        print(f"row {doc.index}: {doc.filename}")

    for failure in result.failed_rows:
        print(f"row {failure.index}: FAILED {failure.error}")
    if result.flags:
        print(f"flags={result.flags}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
