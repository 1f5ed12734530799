"""Helper functions available to alert note templates."""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Callable

DEFAULT_LAYOUT = "2006-01-02 15:04:05"


class HTML(str):
    """Text that is inserted into markup without escaping."""

    def __html__(self) -> str:
        return str(self)


class URL(str):
    """Text trusted as a URL."""

    def __html__(self) -> str:
        return str(self)


def unescaped(s: str) -> HTML:
    return HTML(s)


def urlconvert(s: str) -> URL:
    return URL(s)


def _hour12(d: datetime) -> int:
    return d.hour % 12 or 12


_LAYOUT_TOKENS: list[tuple[str, Callable[[datetime], str]]] = [
    ("January", lambda d: d.strftime("%B")),
    ("Monday", lambda d: d.strftime("%A")),
    ("2006", lambda d: f"{d.year:04d}"),
    ("-0700", lambda d: d.strftime("%z")),
    ("Jan", lambda d: d.strftime("%b")),
    ("Mon", lambda d: d.strftime("%a")),
    ("MST", lambda d: d.strftime("%Z")),
    ("01", lambda d: f"{d.month:02d}"),
    ("02", lambda d: f"{d.day:02d}"),
    ("03", lambda d: f"{_hour12(d):02d}"),
    ("04", lambda d: f"{d.minute:02d}"),
    ("05", lambda d: f"{d.second:02d}"),
    ("06", lambda d: f"{d.year % 100:02d}"),
    ("15", lambda d: f"{d.hour:02d}"),
    ("PM", lambda d: "PM" if d.hour >= 12 else "AM"),
    ("pm", lambda d: "pm" if d.hour >= 12 else "am"),
    ("1", lambda d: str(d.month)),
    ("2", lambda d: str(d.day)),
    ("3", lambda d: str(_hour12(d))),
    ("4", lambda d: str(d.minute)),
    ("5", lambda d: str(d.second)),
]


def _format_layout(moment: datetime, layout: str) -> str:
    out = []
    pos = 0
    while pos < len(layout):
        for token, render in _LAYOUT_TOKENS:
            if layout.startswith(token, pos):
                out.append(render(moment))
                pos += len(token)
                break
        else:
            out.append(layout[pos])
            pos += 1
    return "".join(out)


def timeformat(ts: int, pattern: str | None = None) -> str:
    """Format a Unix timestamp in local time using a reference-time layout."""
    moment = datetime.fromtimestamp(ts).astimezone()
    return _format_layout(moment, pattern or DEFAULT_LAYOUT)


def timestamp(pattern: str | None = None) -> str:
    return _format_layout(datetime.now().astimezone(), pattern or DEFAULT_LAYOUT)


def args(*args: Any) -> dict[str, Any]:
    return {f"arg{i}": value for i, value in enumerate(args)}


_REPL_REF = re.compile(r"\$(\$|\{(\w+)\}|(\w+))")


def _expand_repl(match: re.Match, repl: str) -> str:
    def group_text(ref: re.Match) -> str:
        if ref.group(1) == "$":
            return "$"
        name = ref.group(2) or ref.group(3)
        if name.isdigit():
            index = int(name)
            text = match.group(index) if index <= match.re.groups else None
        elif name in match.re.groupindex:
            text = match.group(name)
        else:
            text = None
        return text or ""

    return _REPL_REF.sub(group_text, repl)


def re_replace_all(pattern: str, repl: str, text: str) -> str:
    """Replace every match; ``$1`` and ``${name}`` refer to groups."""
    regex = re.compile(pattern)
    return regex.sub(lambda m: _expand_repl(m, repl), text)


def _parse_float(s: str) -> float | None:
    if not s or s != s.strip() or "_" in s:
        return None
    try:
        return float(s)
    except ValueError:
        pass
    lowered = s.lower()
    if "0x" in lowered and "p" in lowered:
        try:
            return float.fromhex(s)
        except ValueError:
            return None
    return None


def _fmt(v: float, spec: str) -> str:
    if math.isnan(v):
        return "NaN"
    if math.isinf(v):
        return "+Inf" if v > 0 else "-Inf"
    return format(v, spec)


_BIG_PREFIXES = ("k", "M", "G", "T", "P", "E", "Z", "Y")
_SMALL_PREFIXES = ("m", "u", "n", "p", "f", "a", "z", "y")


def _scale_down(v: float) -> tuple[float, str]:
    prefix = ""
    for p in _SMALL_PREFIXES:
        if abs(v) >= 1:
            break
        prefix = p
        v *= 1000
    return v, prefix


def humanize(s: str) -> str:
    v = _parse_float(s)
    if v is None:
        return s
    if v == 0 or math.isnan(v) or math.isinf(v):
        return _fmt(v, ".2f")
    if abs(v) >= 1:
        prefix = ""
        for p in _BIG_PREFIXES:
            if abs(v) < 1000:
                break
            prefix = p
            v /= 1000
        return f"{_fmt(v, '.2f')}{prefix}"
    v, prefix = _scale_down(v)
    return f"{_fmt(v, '.2f')}{prefix}"


def humanize1024(s: str) -> str:
    v = _parse_float(s)
    if v is None:
        return s
    if abs(v) <= 1 or math.isnan(v) or math.isinf(v):
        return _fmt(v, ".4g")
    prefix = ""
    for p in ("ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi", "Yi"):
        if abs(v) < 1024:
            break
        prefix = p
        v /= 1024
    return f"{_fmt(v, '.4g')}{prefix}"


def humanize_duration(s: str) -> str:
    v = _parse_float(s)
    if v is None:
        return s
    if math.isnan(v) or math.isinf(v):
        return _fmt(v, ".4g")
    if v == 0:
        return f"{_fmt(v, '.4g')}s"
    if abs(v) >= 1:
        sign = ""
        if v < 0:
            sign = "-"
            v = -v
        whole = int(v)
        seconds = whole % 60
        minutes = (whole // 60) % 60
        hours = (whole // 3600) % 24
        days = whole // 86400
        if days:
            return f"{sign}{days}d {hours}h {minutes}m {seconds}s"
        if hours:
            return f"{sign}{hours}h {minutes}m {seconds}s"
        if minutes:
            return f"{sign}{minutes}m {seconds}s"
        return f"{sign}{_fmt(v, '.4g')}s"
    v, prefix = _scale_down(v)
    return f"{_fmt(v, '.4g')}{prefix}s"


def humanize_percentage(s: str) -> str:
    v = _parse_float(s)
    if v is None:
        return s
    return f"{_fmt(v * 100, '.2f')}%"


def humanize_percentage_h(s: str) -> str:
    v = _parse_float(s)
    if v is None:
        return s
    return f"{_fmt(v, '.2f')}%"


def _match(pattern: str, text: str) -> bool:
    return re.search(pattern, text) is not None


TEMPLATE_FUNCS: dict[str, Callable[..., Any]] = {
    "unescaped": unescaped,
    "urlconvert": urlconvert,
    "timeformat": timeformat,
    "timestamp": timestamp,
    "args": args,
    "reReplaceAll": re_replace_all,
    "match": _match,
    "toUpper": str.upper,
    "toLower": str.lower,
    "contains": lambda s, sub: sub in s,
    "humanize": humanize,
    "humanize1024": humanize1024,
    "humanizeDuration": humanize_duration,
    "humanizePercentage": humanize_percentage,
    "humanizePercentageH": humanize_percentage_h,
}