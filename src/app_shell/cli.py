import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path

from src.app_shell.config import (
    build_service_config,
    configure_logging,
    open_document_store,
)
from src.components.assets import AssetHistoryService, create_asset_history_service
from src.core.entities import SLOTS, IncomingFile
from src.core.errors import AssetError
from src.rules.loader import load_rules

logger = logging.getLogger("cli")

RULES_PATH = "rules.yaml"


def get_service(rules_path: Path) -> AssetHistoryService:
    if not rules_path.exists():
        logger.error("Rules file %s not found.", rules_path)
        sys.exit(1)

    rules = load_rules(rules_path)
    configure_logging(rules.ops.log_level)
    store = open_document_store(rules, rules_path.resolve().parent)
    return create_asset_history_service(
        build_service_config(rules),
        store,
        delete_pruned_files=rules.object_store.delete_pruned_files,
    )


def fail(errors: list[AssetError]) -> int:
    err = errors[0]
    print(f"Error [{err.code}]: {err.message}", file=sys.stderr)
    return 1


async def handle_upload(service: AssetHistoryService, args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not path.is_file():
        logger.error("File %s not found.", path)
        return 1

    content_type = args.content_type or mimetypes.guess_type(path.name)[0] or ""
    incoming = IncomingFile(name=path.name, content_type=content_type, data=path.read_bytes())

    def show_progress(percent: int) -> None:
        print(f"\rUploading... {percent}%", end="", flush=True)

    try:
        result = await service.upload_asset(args.owner, args.slot, incoming, show_progress)
    finally:
        await service.aclose()
    print()
    if not result.success or result.record is None:
        return fail(result.errors)

    record = result.record
    print(f"Uploaded {record.id}")
    print(f"URL: {record.url}")
    for name, url in service.get_derived_urls(record.url, args.slot).model_dump().items():
        if url:
            print(f"  {name}: {url}")
    return 0


async def handle_history(service: AssetHistoryService, args: argparse.Namespace) -> int:
    result = await service.list_history(args.owner, args.slot, args.limit)
    if not result.success:
        return fail(result.errors)
    if not result.items:
        print(f"No {args.slot} history for {args.owner}.")
        return 0
    for record in result.items:
        marker = "*" if record.is_active else " "
        uploaded = record.uploaded_at.strftime("%Y-%m-%d %H:%M:%S")
        print(f"{marker} {record.id}  {uploaded}  {record.size_bytes:>9}  {record.url}")
    return 0


async def handle_activate(service: AssetHistoryService, args: argparse.Namespace) -> int:
    result = await service.activate_version(args.owner, args.slot, args.asset_id)
    if not result.success:
        return fail(result.errors)
    print(f"Active {args.slot} for {args.owner}: {result.url}")
    return 0


def handle_urls(service: AssetHistoryService, args: argparse.Namespace) -> int:
    urls = service.get_derived_urls(args.url, args.slot)
    for name, url in urls.model_dump().items():
        if url:
            print(f"{name}: {url}")
    return 0


def handle_status(service: AssetHistoryService, args: argparse.Namespace) -> int:
    status = service.get_config_status()
    print(f"Configured: {'yes' if status.configured else 'no'}")
    for name, preview in status.credentials.items():
        print(f"  {name}: {preview}")
    print(f"Max file size: {status.max_file_size_bytes} bytes")
    print(f"Allowed types: {', '.join(status.allowed_content_types)}")
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Asset Version History CLI")
    parser.add_argument("--rules", default=RULES_PATH, help="Path to rules.yaml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # upload
    upload_parser = subparsers.add_parser("upload", help="Upload a new version")
    upload_parser.add_argument("owner", help="Owner id")
    upload_parser.add_argument("slot", choices=SLOTS)
    upload_parser.add_argument("file", help="Path to the image file")
    upload_parser.add_argument("--content-type", help="Override the guessed content type")

    # history
    history_parser = subparsers.add_parser("history", help="List retained versions")
    history_parser.add_argument("owner", help="Owner id")
    history_parser.add_argument("slot", choices=SLOTS)
    history_parser.add_argument("--limit", type=int, default=3)

    # activate
    activate_parser = subparsers.add_parser("activate", help="Make a version active")
    activate_parser.add_argument("owner", help="Owner id")
    activate_parser.add_argument("slot", choices=SLOTS)
    activate_parser.add_argument("asset_id", help="Version id from `history`")

    # urls
    urls_parser = subparsers.add_parser("urls", help="Print derived URLs for an image URL")
    urls_parser.add_argument("url")
    urls_parser.add_argument("--slot", choices=SLOTS, default="profile")

    # status
    subparsers.add_parser("status", help="Show object store configuration")

    args = parser.parse_args(argv)

    service = get_service(Path(args.rules))

    if args.command == "upload":
        code = asyncio.run(handle_upload(service, args))
    elif args.command == "history":
        code = asyncio.run(handle_history(service, args))
    elif args.command == "activate":
        code = asyncio.run(handle_activate(service, args))
    elif args.command == "urls":
        code = handle_urls(service, args)
    else:
        code = handle_status(service, args)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
