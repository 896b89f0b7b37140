"""
COMET II — word-addressable teaching machine emulator
=====================================================

    ┌────────────┐    ┌───────────┐    ┌─────────────┐
    │ Memory     │<──>│ Machine   │<──>│ I/O (SVC)   │
    │ (words)    │    │ fetch/    │    │ Console /   │
    └────────────┘    │ dispatch  │    │ Buffered    │
    ┌────────────┐    │           │    └─────────────┘
    │ Registers  │<──>│           │
    │ GR0-7,PC,FR│    └───────────┘
    └────────────┘

    - mem/memory.py:        sparse word store
    - cpu/regs.py:          register file + flags
    - cpu/decoder.py:       opcode table, instruction word decoding
    - cpu/instructions.py:  one handler per opcode, dispatch table
    - emu.py:               run-to-completion and single-step engine
"""

__version__ = "0.1.0"

from .errors import (MachineError, InvalidRegister, UndefinedOpcode,
                     StepLimitExceeded, InputPending)
from .mem.memory import Memory
from .cpu.regs import Registers
from .cpu.decoder import MACHINE_INSTRUCTION_NUMBER, ExecContext
from .cpu.instructions import build_dispatch
from .io import ConsoleIO, BufferedIO
from .emu import Machine, InteractiveSession
