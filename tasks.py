"""Invoke tasks for running and testing the Busana import service.

    uv run invoke start --reload
    uv run invoke import-file sales orders.xlsx
    uv run invoke test --mongo-url mongodb://db:27017
"""

import os
import sys
from pathlib import Path

from invoke import task
from invoke.context import Context

LOG_FILE = Path("data/logs/busana.log")
IMPORT_TYPES = (
    "sales",
    "products",
    "stock",
    "advertising",
    "advertising-settlement",
    "returns-and-cancellations",
    "marketplace-reimbursements",
    "commission-adjustments",
    "affiliate-samples",
)


@task
def start(ctx: Context, host: str = "127.0.0.1", port: int = 8000, reload: bool = False) -> None:
    """Serve the API through the uvicorn application factory.

    Args:
        ctx: Invoke context
        host: Interface to listen on
        port: TCP port (default: 8000)
        reload: Restart on source changes
    """
    cmd = f"uv run uvicorn busana.main:create_app --factory --host {host} --port {port}"
    if reload:
        cmd = f"{cmd} --reload --reload-dir busana"

    try:
        ctx.run(cmd, pty=True)
    except KeyboardInterrupt:
        print("\nBusana stopped")
        sys.exit(0)


@task
def logs(ctx: Context, follow: bool = False, lines: int = 50) -> None:
    """Show the tail of busana.log."""
    if not LOG_FILE.exists():
        print(f"{LOG_FILE} does not exist yet; start the server first.")
        return

    ctx.run(f"tail {'-f' if follow else f'-n {lines}'} {LOG_FILE}", pty=follow)


@task
def test(ctx: Context, verbose: bool = False, keyword: str = "", mongo_url: str = "") -> None:
    """Run pytest.

    Database tests need MongoDB and are skipped when it is unreachable.

    Args:
        ctx: Invoke context
        verbose: Per-test output
        keyword: pytest -k expression
        mongo_url: Server for the throwaway test databases
    """
    args = ["uv", "run", "pytest"]
    if verbose:
        args.append("-v")
    if keyword:
        args += ["-k", f"'{keyword}'"]

    env = {"TEST_MONGODB_URL": mongo_url} if mongo_url else {}
    ctx.run(" ".join(args), env=env, pty=True)


@task(name="import-file")
def import_file(ctx: Context, import_type: str, path: str, check: bool = False) -> None:
    """Import a spreadsheet, or only check it for duplicates with --check."""
    if import_type not in IMPORT_TYPES:
        print(f"Unknown import type '{import_type}'. Choose from: {', '.join(IMPORT_TYPES)}")
        sys.exit(1)
    if not os.path.exists(path):
        print(f"File not found: {path}")
        sys.exit(1)

    command = "check" if check else "run"
    ctx.run(f"uv run busana-import {command} {import_type} {path}", pty=True)


@task
def clean(ctx: Context, logs: bool = False) -> None:
    """Remove caches and build output; with --logs also the server log."""
    ctx.run("find . -type d \\( -name __pycache__ -o -name .pytest_cache \\) -prune -exec rm -rf {} +", warn=True)
    ctx.run("rm -rf build dist *.egg-info", warn=True)

    if logs and LOG_FILE.exists():
        LOG_FILE.unlink()
        print(f"Removed {LOG_FILE}")
