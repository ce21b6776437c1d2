"""Operator prompts for the interactive reconciliation loop."""

from __future__ import annotations

import asyncio
from typing import Protocol

from .models import Answer

AFFIRMATIVE_PREFIXES = ("y", "j")


class Console(Protocol):
    async def confirm(self, question: str) -> Answer: ...

    def print_line(self, message: str) -> None: ...


def parse_answer(text: str) -> Answer:
    """Anything starting with y(es) or j(a) counts as yes."""

    return Answer.YES if text.strip().lower().startswith(AFFIRMATIVE_PREFIXES) else Answer.NO


class TerminalConsole:
    """Console backed by stdin/stdout."""

    async def confirm(self, question: str) -> Answer:
        self.print_line(question)
        try:
            reply = await asyncio.to_thread(input, "(y/n) ")
        except EOFError:
            return Answer.NO
        return parse_answer(reply)

    def print_line(self, message: str) -> None:
        print(message, flush=True)


__all__ = ["Console", "TerminalConsole", "parse_answer"]
