"""CLI entrypoint for the LAN mirror server.

Usage:
    python -m main serve --port 8080
    python -m main stage --bundle path/to/web_app
    python -m main ip
    python -m main manifest path/to/build/web
"""
import argparse
import logging
import threading
from dataclasses import replace
from pathlib import Path

from config import ServerConfig
from network import AddressResolver
from server import LanServer
from staging import AssetStager, open_bundle, write_manifest


def build_server(cfg):
    stager = AssetStager(open_bundle(cfg.bundle), scratch_dir=cfg.staging_dir, entry_file=cfg.entry_file)
    return LanServer(stager)


def print_status(status):
    if status.is_running:
        print(f"Serving on {status.url}  (open this address on a device on the same WiFi)")
    elif status.error:
        print(f"Stopped: {status.error}")
    else:
        print("Stopped")


def wait_for_interrupt():
    threading.Event().wait()


def cmd_serve(cfg, args):
    srv = build_server(cfg)
    sub = srv.subscribe(print_status)
    if not srv.start_server(cfg.port):
        srv.dispose()
        sub.join(timeout=5)
        return 1
    try:
        wait_for_interrupt()
    except KeyboardInterrupt:
        print("\nShutting down.")
    finally:
        srv.dispose()
        # let the last status line print before exiting
        sub.join(timeout=5)
    return 0


def cmd_stage(cfg, args):
    stager = AssetStager(open_bundle(cfg.bundle), scratch_dir=cfg.staging_dir, entry_file=cfg.entry_file)
    path = stager.prepare()
    if path is None:
        print("Staging failed; see log for details.")
        return 1
    print(f"Staged web app at {path}")
    return 0


def cmd_ip(cfg, args):
    ip = AddressResolver().resolve()
    if ip is None:
        print("No LAN address found.")
        return 1
    print(ip)
    return 0


def cmd_manifest(cfg, args):
    manifest = write_manifest(args.directory)
    print(f"Wrote {manifest}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(prog="lanmirror", description="Serve a web build to devices on the local network")
    parser.add_argument("--log-level", help="Logging level (default from LANMIRROR_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="cmd")

    p_serve = sub.add_parser("serve", help="Stage the bundle and serve it on the LAN")
    p_serve.add_argument("--port", type=int, help="Port to try first (walks up when busy)")
    p_serve.add_argument("--bundle", type=Path, help="Bundle directory or .zip archive")
    p_serve.set_defaults(func=cmd_serve)

    p_stage = sub.add_parser("stage", help="Stage the bundle without serving it")
    p_stage.add_argument("--bundle", type=Path, help="Bundle directory or .zip archive")
    p_stage.set_defaults(func=cmd_stage)

    p_ip = sub.add_parser("ip", help="Print the LAN address that would be served")
    p_ip.set_defaults(func=cmd_ip)

    p_manifest = sub.add_parser("manifest", help="Write web_app_manifest.txt for a built web directory")
    p_manifest.add_argument("directory", type=Path)
    p_manifest.set_defaults(func=cmd_manifest)

    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 2

    try:
        cfg = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}")
        return 2
    if getattr(args, "port", None) is not None:
        cfg = replace(cfg, port=args.port)
    if getattr(args, "bundle", None) is not None:
        cfg = replace(cfg, bundle=args.bundle)
    if args.log_level:
        cfg = replace(cfg, log_level=args.log_level.upper())

    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    try:
        return args.func(cfg, args)
    except Exception as e:
        logging.getLogger("main").exception("Command failed")
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
