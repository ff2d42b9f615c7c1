"""
Interactive terminal adapter for the multiview studio.

Architectural role:
- Provides a terminal-only interface over `StudioSession`.
- Renders quota, mode and run progress with `multiview.api.presentation`.

Interface responsibilities:
- Accept stdin commands and render studio state to stdout.
- Load images from the local filesystem (picker or drop semantics).
- Save generated views to a directory on request.

Commands:
- `/upload <path>`   select an image (extension-filtered, like a file picker)
- `/drop <path>`     drop an image (MIME-checked, like drag-and-drop)
- `/mode [edit|generate]`
- `/credits <n>`     set total credits (resets usage)
- `/reset`           reset used credits
- `/generate`        run describe + per-view generation
- `/status`          show quota, mode and last result
- `/save <dir>`      write generated views to `<dir>`
- `exit` / `quit`

Error handling strategy:
- `ValidationError`s are printed inline; the loop continues.
- EOF and keyboard interrupts terminate the loop without traceback output.
"""

from dotenv import load_dotenv

load_dotenv()

import sys
import os
import asyncio
import logging

from multiview.api.multimodal.image_input_manager import (
    decode_data_url,
    extension_for,
    read_image_file,
)
from multiview.api.presentation import (
    render_modes,
    render_progress,
    render_quota,
    render_result,
)
from multiview.core.errors import ValidationError
from multiview.core.session import StudioSession


logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  /upload <path>          select an image
  /drop <path>            drop an image
  /mode [edit|generate]   show or switch generation mode
  /credits <n>            set total credits (resets usage)
  /reset                  reset used credits
  /generate               generate views for the current image
  /status                 show quota, mode and last result
  /save <dir>             save generated views
  exit                    quit"""


# =========================================================
# UTF-8 SAFE OUTPUT
# Best-effort stdout encoding normalization for interactive terminals.
# =========================================================

if hasattr(sys.stdout, "reconfigure"):
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="ignore")
    except (AttributeError, ValueError):
        pass


# =========================================================
# COMMANDS
# =========================================================

async def run_generation(session: StudioSession, out=print) -> None:
    """Drive one run and print each observable change."""
    async for event in session.generate():
        if event.kind in ("step", "progress"):
            out(render_progress(event.state))
        elif event.kind == "description":
            out(f'Base prompt: "{event.state.base_description}"')
        elif event.kind == "view":
            latest = event.state.generated_views[-1]
            out(f"View ready: {latest.view}")
        elif event.kind in ("rejected", "error"):
            out(f"ERROR: {event.state.error}")
        elif event.kind == "finished":
            out(render_quota(session.quota.state))


def save_views(session: StudioSession, directory: str) -> list[str]:
    """Write every generated view to `directory`; returns written paths."""
    views = session.state.generated_views
    if not views:
        raise ValidationError("There are no generated views to save.")

    os.makedirs(directory, exist_ok=True)
    written = []
    for index, view in enumerate(views, start=1):
        mime_type, content = decode_data_url(view.image_url)
        slug = "_".join(view.view.lower().split()) or "view"
        path = os.path.join(directory, f"{index:02d}_{slug}{extension_for(mime_type)}")
        with open(path, "wb") as f:
            f.write(content)
        written.append(path)
    return written


def handle_command(session: StudioSession, command: str, out=print) -> bool:
    """Execute one CLI command. Returns `False` when the loop should stop."""
    parts = command.split(maxsplit=1)
    name = parts[0].lower()
    arg = parts[1].strip() if len(parts) > 1 else ""

    if name in ("exit", "quit"):
        return False

    try:
        if name in ("/upload", "/drop"):
            if not arg:
                out(f"Usage: {name} <path>")
                return True
            source = "drop" if name == "/drop" else "picker"
            upload = read_image_file(arg, source=source)
            session.upload_image(upload)
            size = f" {upload.width}x{upload.height}" if upload.width else ""
            out(f"Loaded {upload.filename} ({upload.mime_type}{size})")

        elif name == "/mode":
            if arg:
                session.set_mode(arg.lower())
            out(render_modes(session.mode))

        elif name == "/credits":
            if not session.set_total_credits(arg):
                out(f"Invalid credit total: {arg!r}. Keeping {session.quota.total_credits}.")
            out(render_quota(session.quota.state))

        elif name == "/reset":
            session.reset_credits()
            out(render_quota(session.quota.state))

        elif name == "/generate":
            asyncio.run(run_generation(session, out=out))
            result = render_result(session.snapshot())
            if result:
                out(result)

        elif name == "/status":
            out(render_quota(session.quota.state))
            out(render_modes(session.mode))
            if session.upload:
                out(f"Image: {session.upload.filename or '<unnamed>'}")
            result = render_result(session.snapshot())
            if result:
                out(result)

        elif name == "/save":
            for path in save_views(session, arg or "generated_views"):
                out(f"Saved {path}")

        else:
            out(HELP_TEXT)

    except ValidationError as exc:
        out(f"ERROR: {exc.message}")

    return True


# =========================================================
# MAIN
# =========================================================

def main():
    """
    Run the interactive studio loop.

    Error handling strategy:
    - EOF/interrupt end the loop without stack traces.
    """
    logging.basicConfig(level=logging.WARNING)

    session = StudioSession.from_env()

    print("Multiview studio started. (Type 'exit' to quit)")
    print(render_quota(session.quota.state))
    print(render_modes(session.mode))
    print("-" * 60)

    while True:

        try:
            command = input("> ").strip()

        except EOFError:
            print()
            break

        except KeyboardInterrupt:
            print("\nOperation cancelled by user.")
            break

        if not command:
            continue

        if not handle_command(session, command):
            print("Shutting down.")
            break

        print("-" * 60)


if __name__ == "__main__":
    main()
