"""CLI: storage-client upload | list | delete | usage."""
import argparse
import json
import sys
from pathlib import Path

from .client import StorageClient, StorageClientError


def main() -> int:
    parser = argparse.ArgumentParser(prog="storage-client", description="Manage files on the storage API")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API base URL")
    sub = parser.add_subparsers(dest="command", required=True)

    # upload
    p_upload = sub.add_parser("upload", help="Upload one or more files")
    p_upload.add_argument("files", nargs="+", help="Local file paths to upload")
    p_upload.add_argument("--folder", choices=["images", "documents"], default=None, help="Target folder (default: by type)")
    p_upload.set_defaults(func=cmd_upload)

    # list
    p_list = sub.add_parser("list", help="List files in a folder")
    p_list.add_argument("folder", choices=["images", "documents"])
    p_list.add_argument("--page", type=int, default=1)
    p_list.add_argument("--limit", type=int, default=20)
    p_list.add_argument("--sort", choices=["asc", "desc"], default="desc")
    p_list.set_defaults(func=cmd_list)

    # delete
    p_delete = sub.add_parser("delete", help="Delete a stored file")
    p_delete.add_argument("folder", choices=["images", "documents"])
    p_delete.add_argument("filename", help="Stored filename (as returned by upload)")
    p_delete.set_defaults(func=cmd_delete)

    # usage
    p_usage = sub.add_parser("usage", help="File count and total size of a folder")
    p_usage.add_argument("folder", choices=["images", "documents"])
    p_usage.set_defaults(func=cmd_usage)

    args = parser.parse_args()
    client = StorageClient(base_url=args.base_url)
    try:
        return args.func(client, args)
    except StorageClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()


def cmd_upload(client: StorageClient, args: argparse.Namespace) -> int:
    paths = [Path(f) for f in args.files]
    missing = [p for p in paths if not p.exists()]
    if missing:
        print(f"Missing files: {missing}", file=sys.stderr)
        return 1
    for p in paths:
        out = client.upload(p, folder=args.folder)
        print(json.dumps(out, indent=2))
        print(f"  {p.name} -> {out['url']}", file=sys.stderr)
    return 0


def cmd_list(client: StorageClient, args: argparse.Namespace) -> int:
    out = client.list_files(args.folder, page=args.page, limit=args.limit, sort=args.sort)
    print(json.dumps(out, indent=2))
    print(f"Page {out['page']}/{out['total_pages']} ({out['total']} files)", file=sys.stderr)
    return 0


def cmd_delete(client: StorageClient, args: argparse.Namespace) -> int:
    client.delete(args.filename, args.folder)
    print(f"Deleted {args.folder}/{args.filename}", file=sys.stderr)
    return 0


def cmd_usage(client: StorageClient, args: argparse.Namespace) -> int:
    print(json.dumps(client.usage(args.folder), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
