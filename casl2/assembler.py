"""
CASL II Two-Pass Assembler for the COMET II machine.

Input:  tokenized rows [label, mnemonic, op1, op2, op3] (see lexer.py)
Output: words written straight into a comet2 Memory, plus an
        address -> source row map for the debugger dump

How the two-pass algorithm works:
  Pass 1: Walk the rows once, keeping the current address. Labels are
          bound to the current address. Every word is emitted right away;
          where an operand names a label that may not be known yet, a 0
          placeholder is written and (patch address, label) is recorded.
          Literals (=5, =#000A, ='A') are pooled after the last word in
          a literal table of their own.
  Pass 2: For each recorded (patch address, label), look the label up and
          overwrite the placeholder. A missing label is fatal.

Operand forms:
  GR0-GR7        register
  12, -3         decimal constant / address
  #001F          hexadecimal constant / address
  =n, =#h, ='c'  literal (address of a pooled constant word)
  NAME           label
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from comet2.config import DEFAULT_BASE_ADDRESS, SVC_IN, SVC_OUT
from comet2.cpu.decoder import MACHINE_INSTRUCTION_NUMBER, encode_word
from comet2.dump import format_source_row
from comet2.mem.memory import Memory

from .lexer import parse_source
from .errors import (AssemblerError, UndefinedMnemonic, UndefinedLabel,
                     DuplicateLabel, InvalidPseudoInstruction, InvalidOperand)

__all__ = ['Compiler', 'LineAnalyzer', 'resolve_references', 'parse_number', 'assemble']

logger = logging.getLogger(__name__)

# Assembler directives handled by the Compiler itself
PSEUDO_INSTRUCTIONS = ('START', 'END', 'DC', 'DS')
# CASL II macros; IN/OUT expand to the 3-word SVC form
MACRO_INSTRUCTIONS = {'IN': SVC_IN, 'OUT': SVC_OUT}
# Recognised CASL II macro names that need a stack pointer this machine lacks
UNSUPPORTED_MACROS = ('RPUSH', 'RPOP')

# Instructions whose first operand is an address, not a register
ADDRESS_FIRST = ('JMI', 'JNZ', 'JZE', 'JUMP', 'JPL')

_REGISTER_RE = re.compile(r'^GR([0-7])$')
# Anything spelled like a register (GR8, GR12) is never a label
_REGISTER_LIKE_RE = re.compile(r'^GR[0-9]+$')
_DECIMAL_RE = re.compile(r'^-?[0-9]+$')
_HEX_RE = re.compile(r'^#[0-9A-Fa-f]{1,4}$')
_CHAR_RE = re.compile(r"^'(.)'$")


# ──────────────────────────────────────────────
# Operand helpers
# ──────────────────────────────────────────────

def parse_number(token: str) -> Optional[int]:
    """Decimal or #hex constant, or None if token is not numeric."""
    if _DECIMAL_RE.match(token):
        return int(token)
    if _HEX_RE.match(token):
        return int(token[1:], 16)
    return None


def register_number(token: str) -> Optional[int]:
    """'GR3' -> 3, anything else -> None."""
    m = _REGISTER_RE.match(token)
    return int(m.group(1)) if m else None


def is_register_like(token: str) -> bool:
    return bool(_REGISTER_LIKE_RE.match(token))


def _constant_value(token: str) -> Optional[int]:
    """Value of a number or one-character string constant.

    Hex constants name a 16-bit word, so #8000-#FFFF read as negative
    (#FFFF == -1). Address operands keep the unsigned parse_number value.
    """
    value = parse_number(token)
    if value is not None:
        if token.startswith('#') and value >= 0x8000:
            value -= 0x10000
        return value
    m = _CHAR_RE.match(token)
    if m:
        return ord(m.group(1))
    return None


def resolve_references(memory: Memory, labels: Dict[str, int],
                       references: Sequence[Tuple[int, str]]):
    """Pass 2: overwrite each placeholder with its label's address.

    Pure with respect to the reference list, so running it again over the
    same labels leaves memory unchanged.
    """
    for patch_addr, label in references:
        if label not in labels:
            raise UndefinedLabel(label, patch_addr)
        memory.write(patch_addr, labels[label])


# ──────────────────────────────────────────────
# Line analysis
# ──────────────────────────────────────────────

class LineAnalyzer:
    """Classifies one tokenized row and encodes machine instructions."""

    def __init__(self, row: Sequence[str], index: int = 0):
        fields = list(row) + [''] * (5 - len(row))
        self.index = index
        self.label: str = fields[0]
        self.mnemonic: str = fields[1].upper()
        self.operands: List[str] = [op for op in fields[2:5] if op]
        self.text = format_source_row(fields)

    def error(self, cls, message: str) -> AssemblerError:
        return cls(message, self.index + 1, self.text)

    @property
    def is_pseudo(self) -> bool:
        return (self.mnemonic in PSEUDO_INSTRUCTIONS
                or self.mnemonic in MACRO_INSTRUCTIONS
                or self.mnemonic in UNSUPPORTED_MACROS)

    @property
    def is_machine_instruction(self) -> bool:
        return self.mnemonic in MACHINE_INSTRUCTION_NUMBER

    def encode(self) -> Tuple[int, Optional[str]]:
        """Return (first word, address operand token or None).

        The address operand, when present, goes into the second word and
        is resolved by the Compiler (number, literal or label).
        """
        mnem = self.mnemonic
        if mnem not in MACHINE_INSTRUCTION_NUMBER:
            raise self.error(UndefinedMnemonic, f"Unknown mnemonic: {mnem}")
        forms = MACHINE_INSTRUCTION_NUMBER[mnem]
        ops = self.operands

        # No operands: RET, NOP
        if not ops:
            if 1 not in forms:
                raise self.error(InvalidOperand, f"{mnem}: missing operand")
            return encode_word(forms[1]), None

        # r1,r2 form
        regs = [register_number(op) for op in ops]
        if len(ops) == 2 and None not in regs and mnem not in ADDRESS_FIRST:
            if 1 not in forms:
                raise self.error(InvalidOperand, f"{mnem}: register-register form not supported")
            return encode_word(forms[1], regs[0], regs[1]), None

        if 2 not in forms:
            raise self.error(InvalidOperand, f"{mnem}: unexpected operands {','.join(ops)}")

        # r,adr[,x] or adr[,x]
        if mnem in ADDRESS_FIRST:
            gr1 = 0
            rest = ops
        else:
            if regs[0] is None:
                raise self.error(InvalidOperand, f"{mnem}: first operand must be GR0-GR7")
            gr1 = regs[0]
            rest = ops[1:]

        if not 1 <= len(rest) <= 2:
            raise self.error(InvalidOperand, f"{mnem}: expected adr[,x]")
        adr = rest[0]
        if is_register_like(adr):
            raise self.error(InvalidOperand, f"{mnem}: address operand cannot be {adr}")

        index = 0
        if len(rest) == 2:
            index = register_number(rest[1])
            if index is None or index == 0:
                raise self.error(InvalidOperand,
                                 f"{mnem}: index register must be GR1-GR7, got {rest[1]}")
        return encode_word(forms[2], gr1, index), adr


# ──────────────────────────────────────────────
# The Compiler
# ──────────────────────────────────────────────

class Compiler:
    """Two-pass CASL II assembler writing into a comet2 Memory.

    Usage:
        mem = Memory()
        compiler = Compiler(mem, 0, parse_source(text), {})
        addr_map = compiler.compile()
        Machine(mem, Registers(), io).execute(compiler.entry_address())
    """

    def __init__(self, memory: Memory, base_addr: int = DEFAULT_BASE_ADDRESS,
                 source: Sequence[Sequence[str]] = (),
                 labels: Optional[Dict[str, int]] = None):
        self.memory = memory
        self.base_addr = base_addr
        self.source = source
        self.labels: Dict[str, int] = labels if labels is not None else {}
        self.unresolved: List[Tuple[int, str]] = []   # (patch address, label)
        self.address: int = base_addr                 # current allocation address
        self.start_addr: Optional[int] = None
        self.start_label: Optional[str] = None
        self._addr_map: Dict[int, int] = {}           # address -> source row index
        self._literals: Dict[str, Tuple[int, int]] = {}  # literal -> (value, row index)
        self._literal_addrs: Dict[str, int] = {}         # literal -> pooled address

    def compile(self) -> Dict[int, int]:
        """Run both passes. Returns the address -> source row map."""
        self._pass1()
        self._pass2()
        return self.addr_to_source_index_map()

    def addr_to_source_index_map(self) -> Dict[int, int]:
        return dict(self._addr_map)

    def entry_address(self) -> int:
        """Where execution should begin.

        START's operand label if given, else the START line, else the base.
        """
        if self.start_label:
            if self.start_label not in self.labels:
                raise UndefinedLabel(self.start_label, self.start_addr or self.base_addr)
            return self.labels[self.start_label]
        if self.start_addr is not None:
            return self.start_addr
        return self.base_addr

    # ── Pass 1 ──

    def _pass1(self):
        self.labels.clear()
        self.start_addr = None
        self.start_label = None
        self.address = self.base_addr
        self.unresolved = []
        self._addr_map = {}
        self._literals = {}
        self._literal_addrs = {}

        for index, row in enumerate(self.source):
            self._pass1_line(LineAnalyzer(row, index))

        self._place_literals()
        logger.debug("Pass 1: %d words at #%04X-#%04X, %d labels, %d references",
                     self.address - self.base_addr, self.base_addr, self.address,
                     len(self.labels), len(self.unresolved))

    def _pass1_line(self, line: LineAnalyzer):
        if line.label:
            self._bind_label(line)

        if not line.mnemonic:
            return
        if line.is_pseudo:
            self._pseudo(line)
            return
        if not line.is_machine_instruction:
            raise line.error(UndefinedMnemonic, f"Unknown mnemonic: {line.mnemonic}")

        if line.mnemonic == 'SVC':
            self._svc(line)
            return

        first_word, adr = line.encode()
        self._emit(first_word, line)
        if adr is not None:
            self._emit_address(adr, line)

    def _bind_label(self, line: LineAnalyzer):
        label = line.label
        if is_register_like(label) or parse_number(label) is not None:
            raise line.error(InvalidOperand, f"Invalid label name: '{label}'")
        if label in self.labels:
            raise line.error(DuplicateLabel, f"Duplicate label: '{label}'")
        self.labels[label] = self.address

    def _pseudo(self, line: LineAnalyzer):
        mnem = line.mnemonic

        if mnem == 'START':
            self.start_addr = self.address
            if line.operands:
                self.start_label = line.operands[0]
            return

        if mnem == 'END':
            return

        if mnem == 'DC':
            if len(line.operands) != 1:
                raise line.error(InvalidOperand, "DC: exactly one constant expected")
            token = line.operands[0]
            value = _constant_value(token)
            if value is not None:
                self._emit(value, line)
            elif token.startswith("'"):
                raise line.error(InvalidOperand, f"DC: only one-character strings are supported: {token}")
            else:
                self._emit_address(token, line)
            return

        if mnem == 'DS':
            self._emit(0, line)
            return

        if mnem in MACRO_INSTRUCTIONS:
            if len(line.operands) != 2:
                raise line.error(InvalidOperand, f"{mnem}: expected buffer,length")
            self._emit_svc(MACRO_INSTRUCTIONS[mnem], line.operands[0], line.operands[1], line)
            return

        raise line.error(InvalidPseudoInstruction, f"Unsupported pseudo-instruction: {mnem}")

    def _svc(self, line: LineAnalyzer):
        """SVC type,buffer,length"""
        if len(line.operands) != 3:
            raise line.error(InvalidOperand, "SVC: expected type,buffer,length")
        svc_type = parse_number(line.operands[0])
        if svc_type is None or not 0 <= svc_type <= 0xF:
            raise line.error(InvalidOperand, f"SVC: bad sub-type {line.operands[0]}")
        self._emit_svc(svc_type, line.operands[1], line.operands[2], line)

    def _emit_svc(self, svc_type: int, buf: str, length: str, line: LineAnalyzer):
        opcode = MACHINE_INSTRUCTION_NUMBER['SVC'][2]
        self._emit(encode_word(opcode, 0, svc_type), line)
        self._emit_address(buf, line)
        self._emit_address(length, line)

    def _emit(self, word: int, line: LineAnalyzer):
        """Write one word at the current address and advance."""
        self.memory.write(self.address, word)
        self._addr_map[self.address] = line.index
        self.address += 1

    def _emit_address(self, token: str, line: LineAnalyzer):
        """Emit an address word: constant now, label/literal in pass 2."""
        if token.startswith('='):
            value = _constant_value(token[1:])
            if value is None:
                raise line.error(InvalidOperand, f"Bad literal: {token}")
            self._literals.setdefault(token, (value, line.index))
            self.unresolved.append((self.address, token))
            self._emit(0, line)
            return

        value = parse_number(token)
        if value is not None:
            self._emit(value, line)
            return

        if token.startswith("'") or is_register_like(token):
            raise line.error(InvalidOperand, f"Not an address: {token}")
        self.unresolved.append((self.address, token))
        self._emit(0, line)

    def _place_literals(self):
        """Allocate one word per distinct literal after the program."""
        for token, (value, index) in self._literals.items():
            self._literal_addrs[token] = self.address
            self.memory.write(self.address, value)
            self._addr_map[self.address] = index
            self.address += 1

    # ── Pass 2 ──

    def _pass2(self):
        resolve_references(self.memory, {**self.labels, **self._literal_addrs},
                           self.unresolved)
        logger.debug("Pass 2: patched %d references", len(self.unresolved))


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def assemble(source: str, base_addr: int = DEFAULT_BASE_ADDRESS,
             memory: Optional[Memory] = None) -> Tuple[Memory, Compiler]:
    """Tokenize and assemble source text. Returns (memory, compiler)."""
    memory = memory if memory is not None else Memory()
    compiler = Compiler(memory, base_addr, parse_source(source), {})
    compiler.compile()
    return memory, compiler
