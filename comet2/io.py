"""
COMET II I/O collaborators for the SVC instruction.

The engine only needs two calls:
  request_line(prompt) -> str   one line of input (may suspend)
  emit(text)                    deliver one line of output

ConsoleIO blocks on stdin. BufferedIO is fed programmatically and raises
InputPending when the program asks for input that has not arrived yet,
which is what the interactive stepper builds on.
"""

import sys
from collections import deque
from typing import Deque, List, Optional, TextIO

from .errors import InputPending


class ConsoleIO:
    """Reads from stdin, writes to stdout."""

    def __init__(self, stdin: Optional[TextIO] = None,
                 stdout: Optional[TextIO] = None):
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout

    def request_line(self, prompt: str = "") -> str:
        if prompt:
            print(prompt, file=self._stdout, flush=True)
        line = self._stdin.readline()
        return line.rstrip('\r\n').strip()

    def emit(self, text: str):
        print(text, file=self._stdout, flush=True)


class BufferedIO:
    """Queue-fed input plus captured output.

    Usage:
        io = BufferedIO(["hello"])
        machine = Machine(mem, regs, io)
        machine.execute(0)
        io.output  # ["hello"]
    """

    def __init__(self, lines: Optional[List[str]] = None):
        self._input: Deque[str] = deque(lines or [])
        self.output: List[str] = []
        self.prompts: List[str] = []

    def feed(self, line: str):
        """Queue one input line."""
        self._input.append(line)

    def request_line(self, prompt: str = "") -> str:
        if not self._input:
            raise InputPending(prompt)
        self.prompts.append(prompt)
        return self._input.popleft()

    def emit(self, text: str):
        self.output.append(text)
