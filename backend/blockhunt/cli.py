from __future__ import annotations

import click
from flask import Flask, current_app
from flask.cli import AppGroup, with_appcontext

from .extensions import db

blocks_cli = AppGroup("blocks", help="Block catalog maintenance.")
qr_cli = AppGroup("qr", help="QR code helpers.")
questions_cli = AppGroup("questions", help="Challenge question maintenance.")


@blocks_cli.command("seed")
@with_appcontext
def seed_command():
    """Insert missing catalog blocks (safe to re-run)."""
    from .core.catalog import seed_blocks

    stats = seed_blocks()
    click.echo(
        f"Blocks: {stats['created']} created, {stats['skipped']} already present "
        f"({stats['defaultBlocks']} default, {stats['qrBlocks']} QR-gated)"
    )


@questions_cli.command("seed")
@with_appcontext
def seed_questions_command():
    """Insert the built-in practice questions (safe to re-run)."""
    from .core.challenges import seed_questions

    stats = seed_questions()
    click.echo(f"Questions: {stats['created']} created, {stats['skipped']} already present")


@qr_cli.command("create-test")
@with_appcontext
def create_test_command():
    """Create or re-enable the development QR code."""
    from .core.qrcodes import create_test_qr_code, qr_payload_text

    row = create_test_qr_code()
    click.echo(f"{row.id} -> {row.block_id}")
    click.echo(qr_payload_text(row))


@qr_cli.command("image")
@click.argument("code_id")
@click.argument("output", type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def image_command(code_id: str, output: str):
    """Write the PNG for CODE_ID to OUTPUT."""
    from .models.qr_code import QRCode
    from .core.qrcodes import qr_payload_text, render_qr_png

    row = db.session.get(QRCode, code_id)
    if row is None:
        raise click.ClickException(f"QR code {code_id} not found")
    buf = render_qr_png(qr_payload_text(row), box_size=int(current_app.config.get("QR_BOX_SIZE", 10)))
    with open(output, "wb") as f:
        f.write(buf.getvalue())
    click.echo(f"Wrote {output}")


@click.command("scan")
@click.option("--user-id", type=int, required=True, help="User credited with scanned blocks.")
@click.option("--camera", type=int, default=None, help="Camera index (defaults to SCAN_CAMERA_INDEX).")
@with_appcontext
def scan_command(user_id: int, camera: int | None):
    """Run the camera scan station for USER-ID against the local database."""
    from .core.resolver import process_scan
    from .scanner.display_config import load_display_configs
    from .scanner.overlay import OverlayRenderer
    from .scanner.session import ScanSession

    app = current_app._get_current_object()  # type: ignore[attr-defined]

    def resolve(text: str):
        # Runs on the worker thread, which needs its own app context
        with app.app_context():
            return process_scan(user_id, text)

    celebrate = float(app.config.get("CELEBRATE_SECONDS", 3.0))
    overlay = OverlayRenderer(
        640,
        480,
        celebrate_seconds=celebrate,
        display_overrides=load_display_configs(app.config.get("BLOCK_DISPLAY_CONFIG")),
    )
    index = camera if camera is not None else int(app.config.get("SCAN_CAMERA_INDEX", 0))
    session = ScanSession(resolve, overlay=overlay, camera_index=index, celebrate_seconds=celebrate)
    outcome = session.run()
    if outcome is None:
        click.echo("No QR code scanned.")
    elif not outcome.success:
        raise click.ClickException(outcome.message)


def register_cli(app: Flask) -> None:
    app.cli.add_command(blocks_cli)
    app.cli.add_command(qr_cli)
    app.cli.add_command(questions_cli)
    app.cli.add_command(scan_command)
