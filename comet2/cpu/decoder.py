"""
COMET II Opcode Table + Instruction Word Decoding

This module is shared by the assembler (mnemonic -> opcode) and the
emulator (opcode -> handler, see instructions.py).

Instruction word layout (16 bits):
    15        8 7     4 3     0
   ┌───────────┬───────┬───────┐
   │  opcode   │  GR1  │GR2/IR │
   └───────────┴───────┴───────┘

  1-word form:  OP r1,r2        — both nibbles are register numbers
  2-word form:  OP r,adr[,x]    — second word is adr, low nibble is the
                                  index register (0 = no indexing)
  SVC:          3 words on this machine — low nibble is the sub-type,
                followed by a data address and a length address.

The effective address of every memory operand is adr + GR[x] when x != 0,
otherwise adr itself. There is no other addressing mode.
"""

from dataclasses import dataclass
from typing import Dict

from ..config import OPCODE_SHIFT, GR1_SHIFT, GR1_MASK, GR2_MASK
from ..mem.memory import Memory
from .regs import Registers


# ──────────────────────────────────────────────
# Opcode table
# ──────────────────────────────────────────────
# Format: mnemonic -> {word_length: opcode}
#
# Word length 1 is the register-register form, 2 is the register-memory
# (or address-only) form. SVC is listed under 2 like on the opcode card
# even though the word-length of this machine's SVC is 3.

MACHINE_INSTRUCTION_NUMBER: Dict[str, Dict[int, int]] = {
    'NOP':  {1: 0x00},
    'LD':   {1: 0x14, 2: 0x10},
    'ST':   {2: 0x11},
    'LAD':  {2: 0x12},
    'ADDA': {1: 0x24, 2: 0x20},
    'SUBA': {1: 0x25, 2: 0x21},
    'AND':  {1: 0x34, 2: 0x30},
    'OR':   {1: 0x35, 2: 0x31},
    'XOR':  {1: 0x36, 2: 0x32},
    'CPA':  {1: 0x44, 2: 0x40},
    'JMI':  {2: 0x61},
    'JNZ':  {2: 0x62},
    'JZE':  {2: 0x63},
    'JUMP': {2: 0x64},
    'JPL':  {2: 0x65},
    'RET':  {1: 0x81},
    'SVC':  {2: 0xF0},
}

RET_OPCODE = MACHINE_INSTRUCTION_NUMBER['RET'][1]
SVC_OPCODE = MACHINE_INSTRUCTION_NUMBER['SVC'][2]

# Reverse table for traces and listings: opcode -> (mnemonic, word_length)
OPCODE_NAMES: Dict[int, tuple] = {
    opcode: (mnem, length)
    for mnem, forms in MACHINE_INSTRUCTION_NUMBER.items()
    for length, opcode in forms.items()
}


def opcode_of(word: int) -> int:
    """High byte of an instruction word."""
    return (word & 0xFF00) >> OPCODE_SHIFT


def encode_word(opcode: int, gr1: int = 0, gr2: int = 0) -> int:
    """Build the first word of an instruction."""
    return (opcode << OPCODE_SHIFT) | (gr1 << GR1_SHIFT) | gr2


# ──────────────────────────────────────────────
# Execution context
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class ExecContext:
    """Everything one instruction may read or mutate.

    Built fresh by the engine for every step, so handlers stay plain
    functions with no state of their own. All decoding is relative to
    the PC at the time of the call.
    """
    mem: Memory
    regs: Registers
    io: object = None

    def instruction_word(self) -> int:
        return self.mem.read(self.regs.PC)

    def gr1(self) -> int:
        """Bits 4-7: first register operand."""
        return (self.instruction_word() & GR1_MASK) >> GR1_SHIFT

    def gr2_or_index(self) -> int:
        """Bits 0-3: second register, index register, or SVC sub-type."""
        return self.instruction_word() & GR2_MASK

    def addr_operand(self) -> int:
        """The literal address held in the word after the instruction."""
        return self.mem.read(self.regs.PC + 1)

    def effective_address(self) -> int:
        addr = self.addr_operand()
        if self.gr2_or_index() != 0:
            addr += self.regs.get_gr(self.gr2_or_index())
        return addr

    def set_flags(self, value: int):
        """Three-way flag summary of value. OF is always 0."""
        if value > 0:
            self.regs.set_flags(0, 0, 0)
        elif value == 0:
            self.regs.set_flags(0, 0, 1)
        else:
            self.regs.set_flags(0, 1, 0)
