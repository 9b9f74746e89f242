"""Terminal status lines for ``livespec dev`` and ``livespec tail``.

Colors are dropped when ``NO_COLOR`` is set, ``TERM=dumb``, or stderr is
not a terminal.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from livespec.config import LiveSpecConfig
    from livespec.graph.model import SpecGraphData


class _Palette(NamedTuple):
    reset: str = ""
    bold: str = ""
    dim: str = ""
    cyan: str = ""
    green: str = ""
    yellow: str = ""


_ANSI = _Palette("\033[0m", "\033[1m", "\033[2m", "\033[36m", "\033[32m", "\033[33m")
_PLAIN = _Palette()


def _palette() -> _Palette:
    if os.environ.get("NO_COLOR") or os.environ.get("TERM") == "dumb":
        return _PLAIN
    isatty = getattr(sys.stderr, "isatty", None)
    return _ANSI if isatty is not None and isatty() else _PLAIN


def _link(url: str, p: _Palette) -> str:
    """OSC 8 hyperlink when colors are on."""
    if p is _PLAIN:
        return url
    return f"\033]8;;{url}\033\\{p.bold}{p.cyan}{url}{p.reset}\033]8;;\033\\"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _title(mode: str, p: _Palette) -> list[str]:
    from livespec import __version__

    badge_color = p.green if mode == "dev" else p.cyan
    return [
        "",
        f"  {p.cyan}{p.bold}◆{p.reset}  LiveSpec {p.dim}v{__version__}{p.reset}"
        f"  {badge_color}[{mode}]{p.reset}",
        f"  {p.dim}{'─' * 43}{p.reset}",
    ]


def _emit(lines: list[str]) -> None:
    print("\n".join(lines), file=sys.stderr)


def print_banner(
    config: LiveSpecConfig,
    mode: str,
    *,
    ws_port: int,
    http_port: int,
    graph: SpecGraphData | None = None,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the startup summary for a served project to stderr.

    Args:
        config: Configuration of the open project.
        mode: Badge text, ``"dev"`` for the live server.
        ws_port: Bound transport port.
        http_port: Bound content server port.
        graph: Graph loaded at open time, if any.
        load_ms: Time from launch to servers listening.
        warnings: Extra lines shown after the summary.

    """
    p = _palette()
    timing = f" {p.dim}in {load_ms:.0f}ms{p.reset}" if load_ms > 0 else ""
    tree = [
        ("project", f"{config.root}{timing}"),
        ("serving", f"{p.dim}{config.static_root}{p.reset}"),
    ]
    if graph is not None:
        counts = f"{_plural(len(graph.nodes), 'node')}, {_plural(len(graph.edges), 'edge')}"
        tree.append(("graph", f"{graph.meta.name} {p.dim}({counts}){p.reset}"))

    lines = _title(mode, p)
    lines.extend(f"  {p.dim}├─{p.reset} {label}: {value}" for label, value in tree)
    lines.append(
        f"  {p.dim}└─{p.reset} {p.green}live{p.reset} transport on "
        f"{p.dim}ws://{config.host}:{ws_port}{p.reset}"
    )
    lines += ["", f"  {_link(f'http://{config.host}:{http_port}', p)}", ""]
    lines.append(f"  {p.dim}Watching for changes...{p.reset}")
    if warnings:
        lines.append("")
        lines.extend(f"  {p.yellow}!{p.reset} {w}" for w in warnings)
    lines.append("")
    _emit(lines)


def print_tail_banner(url: str) -> None:
    """Print the ``livespec tail`` header to stderr."""
    p = _palette()
    lines = _title("tail", p)
    lines += [f"  {p.dim}└─{p.reset} listening to {p.dim}{url}{p.reset}", ""]
    _emit(lines)
