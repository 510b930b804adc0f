import click
from rich.console import Console
from rich.table import Table
from rich.live import Live
from rich.panel import Panel
from rich.text import Text
import time
import webbrowser

# Try to import the mpv port, handle missing libmpv
try:
    from .mpv_port import MpvAudioPort
    MPV_AVAILABLE = True
except (ImportError, OSError):
    MPV_AVAILABLE = False

from shared.constants import DEFAULT_PROXY_URL
from shared.errors import ApiError
from shared.models import PlaybackStatus, Track
from .engine import PlaybackEngine
from .proxy_client import ProxyClient, AuthMonitor

console = Console()


def _fmt_ms(ms):
    seconds = int(ms // 1000)
    return f"{seconds // 60}:{seconds % 60:02d}"


def _fmt_sec(sec):
    return f"{int(sec // 60)}:{int(sec % 60):02d}"


def _tracks_table(title, tracks):
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Artist", style="green")
    table.add_column("Album", style="yellow")
    table.add_column("Duration", style="magenta")
    table.add_column("Preview", justify="center")
    for t in tracks:
        table.add_row(t.id, t.name, t.artist, t.album, _fmt_ms(t.duration_ms), "✓" if t.has_preview else "-")
    return table


def _track_items(payload, key=None):
    """Pull track objects out of the various upstream list shapes."""
    items = payload.get(key, {}).get("items", []) if key else payload.get("items", payload.get("tracks", []))
    tracks = []
    for item in items or []:
        # recently-played wraps each track as {"track": {...}, "played_at": ...}
        data = item.get("track", item) if isinstance(item, dict) else None
        if isinstance(data, dict) and data.get("id"):
            tracks.append(Track.from_dict(data))
    return tracks


@click.group()
@click.option('--server', envvar='TUNEBRIDGE_SERVER', default=DEFAULT_PROXY_URL, show_default=True,
              help='Base URL of the Tunebridge proxy')
@click.option('--session', 'session_cookie', envvar='TUNEBRIDGE_SESSION',
              help='Value of the spotify_session cookie issued after login')
@click.pass_context
def cli(ctx, server, session_cookie):
    """🎵 Tunebridge preview player"""
    ctx.obj = ProxyClient(server, session_cookie=session_cookie)


def _run(fn):
    try:
        return fn()
    except ApiError as e:
        console.print(f"[red]{e.message}[/red]")
        raise click.exceptions.Exit(1)


@cli.command()
@click.pass_obj
def login(client):
    """Open the Spotify login page in a browser."""
    console.print(f"Opening [cyan]{client.login_url}[/cyan]")
    console.print("After logging in, copy the [bold]spotify_session[/bold] cookie into TUNEBRIDGE_SESSION.")
    webbrowser.open(client.login_url)


@cli.command()
@click.pass_obj
def status(client):
    """Show authentication status."""
    monitor = AuthMonitor(client)
    if monitor.check_status():
        name = (monitor.user or {}).get("display_name") or (monitor.user or {}).get("id")
        console.print(f"[green]✓ Logged in as {name}[/green]")
    else:
        console.print("[yellow]Not logged in.[/yellow] Run [cyan]tunebridge login[/cyan].")


@cli.command()
@click.pass_obj
def refresh(client):
    """Refresh the access token held in the session."""
    result = _run(client.refresh)
    console.print(f"[green]✓ Token refreshed[/green] (expires in {result.get('expires_in')}s)")


@cli.command()
@click.pass_obj
def logout(client):
    """End the proxy session."""
    AuthMonitor(client).logout()
    console.print("[green]Logged out.[/green]")


@cli.command()
@click.argument('query')
@click.option('--type', 'types', default='track', show_default=True, help='Comma-separated search types')
@click.option('--limit', default=20, show_default=True)
@click.option('--offset', default=0, show_default=True)
@click.pass_obj
def search(client, query, types, limit, offset):
    """Search the catalogue."""
    result = _run(lambda: client.search(query, types.split(','), limit=limit, offset=offset))
    tracks = _track_items(result, 'tracks')
    if tracks:
        page = result.get('tracks', {})
        console.print(_tracks_table(f"Tracks ({page.get('offset', 0)}-{page.get('offset', 0) + len(tracks)} "
                                    f"of {page.get('total', len(tracks))})", tracks))
    for kind in ('albums', 'artists'):
        items = result.get(kind, {}).get('items', [])
        if items:
            table = Table(title=kind.capitalize())
            table.add_column("ID", style="cyan", no_wrap=True)
            table.add_column("Name", style="bold white")
            for item in items:
                table.add_row(item.get('id', ''), item.get('name', ''))
            console.print(table)
    if not any(isinstance(v, dict) and v.get("items") for v in result.values()):
        console.print("[yellow]No results.[/yellow]")


@cli.command()
@click.option('--limit', default=20, show_default=True)
@click.pass_obj
def recent(client, limit):
    """Recently played tracks."""
    tracks = _track_items(_run(lambda: client.recently_played(limit)))
    console.print(_tracks_table("Recently played", tracks))


@cli.command()
@click.option('--limit', default=20, show_default=True)
@click.pass_obj
def top(client, limit):
    """Your top tracks."""
    tracks = _track_items(_run(lambda: client.top_tracks(limit)))
    console.print(_tracks_table("Top tracks", tracks))


@cli.command()
@click.argument('seeds')
@click.option('--limit', default=20, show_default=True)
@click.pass_obj
def recommend(client, seeds, limit):
    """Recommendations from comma-separated seed track ids."""
    tracks = _track_items(_run(lambda: client.recommendations(seeds.split(','), limit)))
    console.print(_tracks_table("Recommendations", tracks))


@cli.command()
@click.argument('track_id')
@click.pass_obj
def save(client, track_id):
    """Save a track to your library."""
    console.print(f"[green]{_run(lambda: client.save_track(track_id)).get('message')}[/green]")


@cli.command()
@click.argument('track_id')
@click.pass_obj
def unsave(client, track_id):
    """Remove a track from your library."""
    console.print(f"[green]{_run(lambda: client.remove_track(track_id)).get('message')}[/green]")


@cli.command()
@click.argument('track_id')
@click.pass_obj
def saved(client, track_id):
    """Check whether a track is in your library."""
    is_saved = _run(lambda: client.check_saved(track_id))
    console.print("[green]Saved[/green]" if is_saved else "[yellow]Not saved[/yellow]")


@cli.command()
@click.argument('query')
@click.option('--limit', default=10, show_default=True)
@click.pass_obj
def play(client, query, limit):
    """Search for tracks and play their previews in order."""
    if not MPV_AVAILABLE:
        console.print(Panel.fit(
            "[red bold]Missing System Dependency: libmpv[/red bold]\n\n"
            "Preview playback requires the [cyan]libmpv[/cyan] library.\n\n"
            "• Ubuntu/Debian: [green]sudo apt install libmpv2[/green]\n"
            "• Fedora: [green]sudo dnf install mpv-libs[/green]\n"
            "• Arch: [green]sudo pacman -S mpv[/green]",
            border_style="red"
        ))
        return

    tracks = [t for t in _track_items(_run(lambda: client.search(query, ['track'], limit=limit)), 'tracks')
              if t.has_preview]
    if not tracks:
        console.print("[yellow]No tracks with a preview found.[/yellow]")
        return

    port = MpvAudioPort()
    engine = PlaybackEngine(port)
    engine.queue_manager.add_multiple(tracks)
    # Re-validates the session every few minutes while the previews play
    monitor = AuthMonitor(client)
    monitor.start()
    engine.play_from_queue(0)

    try:
        with Live(console=console, refresh_per_second=4) as live:
            while engine.status in (PlaybackStatus.PLAYING, PlaybackStatus.PAUSED):
                state = engine.get_state()
                track = state.current_track
                total = state.duration or 30
                percent = min(100, (state.current_time / total) * 100) if total else 0

                status = Text()
                status.append(f"{track.name} - {track.artist}\n", style="bold green")
                status.append(f"{_fmt_sec(state.current_time)} ", style="cyan")
                status.append("━" * int(percent / 2), style="blue")
                status.append(" " * (50 - int(percent / 2)), style="grey50")
                status.append(f" {_fmt_sec(total)}", style="cyan")
                status.append(f"\n{state.current_index + 1}/{len(state.queue)}", style="magenta")
                if not monitor.is_authenticated:
                    status.append("\nSession expired: run tunebridge refresh", style="yellow")

                live.update(Panel(status, title="Now Playing"))
                time.sleep(0.25)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
    finally:
        monitor.stop()
        port.stop()
        port.close()


if __name__ == '__main__':
    cli()
