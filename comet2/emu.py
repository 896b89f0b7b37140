"""
COMET II Machine — fetch / decode / dispatch loop

Execution model:
  1. Fetch the word at PC, take its high byte as the opcode
  2. RET → stop (PC stays on the RET word)
  3. Look up the handler; no handler → UndefinedOpcode (nothing mutated)
  4. Run the handler with a fresh ExecContext
  5. step 0 → handler already moved PC; step n → PC += n

Two ways to drive it:
  - execute(begin_addr)             run to completion
  - execute_interactive(begin_addr) one instruction per step() call,
                                    for the single-step debugger

Usage:
    mem, regs = Memory(), Registers()
    Compiler(mem, 0, parse_source(text), {}).compile()
    Machine(mem, regs, ConsoleIO()).execute(0)
"""

import logging
from typing import Dict, List, Optional

from .cpu.decoder import ExecContext, OPCODE_NAMES, RET_OPCODE, opcode_of
from .cpu.instructions import Handler, build_dispatch
from .cpu.regs import Registers
from .dump import to_word_hex
from .errors import InputPending, StepLimitExceeded, UndefinedOpcode
from .mem.memory import Memory

logger = logging.getLogger(__name__)


class Machine:
    """COMET II execution engine.

    The dispatch table is built once (build_dispatch) unless one is
    injected; handlers are stateless so one table can serve any number
    of machines.
    """

    def __init__(self, memory: Memory, registers: Registers, io=None,
                 dispatch: Optional[Dict[int, Handler]] = None):
        self.mem = memory
        self.regs = registers
        self.io = io
        self._dispatch = dispatch if dispatch is not None else build_dispatch()

        self._trace = False
        self._trace_output: List[str] = []

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def execute(self, begin_addr: int, max_steps: Optional[int] = None):
        """Run from begin_addr until RET.

        max_steps=None means no limit. Errors propagate to the caller.
        """
        self.regs.PC = begin_addr
        logger.info("Execution start at %s", to_word_hex(begin_addr))
        executed = 0
        while True:
            if (max_steps is not None and executed >= max_steps
                    and self.instruction_number() != RET_OPCODE):
                raise StepLimitExceeded(max_steps, self.regs.PC)
            if not self.step():
                break
            executed += 1
        logger.info("Execution stopped at RET %s after %d steps",
                    to_word_hex(self.regs.PC), executed)

    def execute_interactive(self, begin_addr: int) -> 'InteractiveSession':
        """Position PC at begin_addr and return a single-step handle."""
        self.regs.PC = begin_addr
        return InteractiveSession(self)

    def instruction_number(self) -> int:
        """Opcode of the word at PC."""
        return opcode_of(self.mem.read(self.regs.PC))

    def step(self) -> bool:
        """Execute one instruction. Returns False once RET is reached."""
        pc = self.regs.PC
        opcode = self.instruction_number()

        if opcode == RET_OPCODE:
            # TODO: return to caller once CALL and a stack pointer exist
            return False

        handler = self._dispatch.get(opcode)
        if handler is None:
            raise UndefinedOpcode(opcode, pc)

        if self._trace:
            mnem = OPCODE_NAMES.get(opcode, ('?',))[0]
            self._trace_output.append(f"{to_word_hex(pc)}: {mnem:<5} {self.regs.display()}")

        step = handler(ExecContext(self.mem, self.regs, self.io))
        self.regs.steps += 1
        if step != 0:
            self.regs.PC = pc + step
        logger.debug("%s op=#%02X step=%d -> PC %s",
                     to_word_hex(pc), opcode, step, to_word_hex(self.regs.PC))
        return True

    # ══════════════════════════════════════════════
    # Trace
    # ══════════════════════════════════════════════

    def enable_trace(self, enabled: bool = True):
        self._trace = enabled

    def get_trace(self) -> List[str]:
        return list(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()


class InteractiveSession:
    """Single-step handle returned by Machine.execute_interactive().

    step() runs one instruction and reports whether the program is still
    running. When the SVC input instruction finds no line ready, step()
    returns True with awaiting_input set and PC still on the SVC word;
    supply a line with provide_input() (or feed the I/O collaborator
    directly) and step again.
    """

    def __init__(self, machine: Machine):
        self.machine = machine
        self.running = True
        self.awaiting_input = False
        self.pending_prompt = ""

    def step(self) -> bool:
        if not self.running:
            return False
        try:
            self.running = self.machine.step()
        except InputPending as e:
            self.awaiting_input = True
            self.pending_prompt = e.prompt
            logger.debug("Waiting for input at %s", to_word_hex(self.machine.regs.PC))
            return True
        self.awaiting_input = False
        self.pending_prompt = ""
        return self.running

    def provide_input(self, line: str):
        """Queue a line on the machine's I/O collaborator."""
        self.machine.io.feed(line)

    @property
    def pc(self) -> int:
        return self.machine.regs.PC
