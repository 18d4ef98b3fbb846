from __future__ import annotations

from typing import ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")

type Row = tuple[str | None, ...]
