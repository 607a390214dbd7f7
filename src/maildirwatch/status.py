import typer

from .config import AppConfig
from .discovery import list_user_dirs
from .models import WalkResult
from .walker import walk_tree


def _print_result(result: WalkResult) -> None:
    typer.echo(f"\n{result.user_path}")
    typer.echo("-" * len(str(result.user_path)))
    typer.echo(f"Elements:            {result.element_count}")
    typer.echo(f"Folders:             {result.folder_count}")
    typer.echo(f"Files:               {result.file_count}")
    typer.echo(f"Total size:          {result.total_size:,} bytes")
    typer.echo(f"SHA-512:             {result.checksum}")


def status_command(cfg: AppConfig) -> int:
    """
    Walk every user's Maildir once and print its fingerprint.

    Nothing is watched. Returns the number of users whose walk failed.
    """
    failed: int = 0

    typer.echo(f"Maildir root: {cfg.maildir_root}")

    for user_path in list_user_dirs(cfg.maildir_root):
        try:
            result: WalkResult = walk_tree(user_path)
        except OSError as e:
            typer.echo(f"\n{user_path}: walk failed: {e}", err=True)
            failed += 1
            continue

        _print_result(result)

    return failed
