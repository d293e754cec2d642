#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Console spinner for the NDC calc CLI stages."""

from __future__ import annotations

import sys
import threading
import time
from typing import Callable, Optional, TextIO, TypeVar, Union

T = TypeVar("T")

LabelType = Union[str, Callable[[float], str]]

FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


def run_with_spinner(
    label: LabelType,
    func: Callable[[], T],
    completion_label: Optional[Callable[[float], str]] = None,
    stream: Optional[TextIO] = None,
) -> T:
    """Run func() in a worker thread, animating `label` with elapsed seconds until it returns.

    Non-interactive streams (pipes, CI logs) get only the final line. Any
    exception raised by func is re-raised after the final line is written.
    """
    out = stream or sys.stdout
    interactive = hasattr(out, "isatty") and out.isatty()
    done = threading.Event()
    result: list[T] = []
    err: list[BaseException] = []

    def worker() -> None:
        try:
            result.append(func())
        except BaseException as exc:  # noqa: BLE001 - re-raised on the caller's thread
            err.append(exc)
        finally:
            done.set()

    def render(elapsed: float) -> str:
        return label(elapsed) if callable(label) else label

    start = time.perf_counter()
    thread = threading.Thread(target=worker, daemon=True)
    thread.start()
    idx = 0
    while not done.wait(0.1):
        if interactive:
            elapsed = time.perf_counter() - start
            out.write(f"\r{FRAMES[idx % len(FRAMES)]} {elapsed:7.2f}s {render(elapsed)}    ")
            out.flush()
        idx += 1
    thread.join()

    elapsed = time.perf_counter() - start
    mark = "✗" if err else "⣿"
    final = completion_label(elapsed) if completion_label else render(elapsed)
    out.write(f"\r{mark} {elapsed:7.2f}s {final}    \n")
    out.flush()
    if err:
        raise err[0]
    return result[0]


def timed_spinner(label: str, func: Callable[[], None]) -> float:
    """Pipeline stage adapter: spin while func runs and return elapsed seconds."""
    start = time.perf_counter()
    run_with_spinner(label, func)
    return time.perf_counter() - start


__all__ = ["run_with_spinner", "timed_spinner"]
