"""Raw terminal input for the asyncio event loop."""

import asyncio
import os
import sys
import termios
import tty
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager
from typing import TextIO

from bullscope.ui.keys import Key, parse_keys

READ_CHUNK = 1024


@contextmanager
def raw_mode(stream: TextIO | None = None) -> Iterator[None]:
    """Put the terminal in cbreak mode; restore it on exit."""
    stream = stream or sys.stdin
    if not stream.isatty():
        yield
        return

    fd = stream.fileno()
    saved = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        # cbreak keeps ISIG; turn it off so ctrl+c arrives as a key
        attrs = termios.tcgetattr(fd)
        attrs[3] &= ~termios.ISIG
        termios.tcsetattr(fd, termios.TCSADRAIN, attrs)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


async def read_keys(stream: TextIO | None = None) -> AsyncIterator[Key]:
    """Yield key presses from a terminal stream without blocking the loop."""
    stream = stream or sys.stdin
    fd = stream.fileno()
    loop = asyncio.get_running_loop()
    chunks: asyncio.Queue[str] = asyncio.Queue()

    def on_readable() -> None:
        data = os.read(fd, READ_CHUNK)
        # EOF: stop reading, let the consumer see an empty chunk
        if not data:
            loop.remove_reader(fd)
        chunks.put_nowait(data.decode(errors="ignore"))

    loop.add_reader(fd, on_readable)
    try:
        while True:
            data = await chunks.get()
            if not data:
                return
            for key in parse_keys(data):
                yield key
    finally:
        loop.remove_reader(fd)
