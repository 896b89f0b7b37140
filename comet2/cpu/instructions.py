"""
COMET II Instruction Handlers

One plain function per (mnemonic, form). Handler signature:

    handler(ctx: ExecContext) -> int

The return value is the instruction's step:
  step > 0  — the engine advances PC by that many words
  step == 0 — the handler already moved PC (taken jump)

Arithmetic works on the stored values as-is. Results are not truncated
to 16 bits and OF is never set; see DESIGN.md for that decision.

RET has no handler: the engine recognises it before dispatch and stops.
"""

import logging
from typing import Callable, Dict

from ..config import SVC_IN, SVC_OUT, INPUT_PROMPT
from ..dump import to_word_hex
from .decoder import ExecContext, MACHINE_INSTRUCTION_NUMBER as OP

logger = logging.getLogger(__name__)

Handler = Callable[[ExecContext], int]


# ══════════════════════════════════════════════
# Load / store
# ══════════════════════════════════════════════

def ld_r(ctx: ExecContext) -> int:
    """LD r1,r2"""
    result = ctx.regs.get_gr(ctx.gr2_or_index())
    ctx.regs.set_gr(ctx.gr1(), result)
    ctx.set_flags(result)
    return 1


def ld_m(ctx: ExecContext) -> int:
    """LD r,adr,x"""
    result = ctx.mem.read(ctx.effective_address())
    ctx.regs.set_gr(ctx.gr1(), result)
    ctx.set_flags(result)
    return 2


def lad(ctx: ExecContext) -> int:
    """LAD r,adr,x — loads the address itself, flags untouched."""
    ctx.regs.set_gr(ctx.gr1(), ctx.effective_address())
    return 2


def st(ctx: ExecContext) -> int:
    """ST r,adr,x"""
    ctx.mem.write(ctx.effective_address(), ctx.regs.get_gr(ctx.gr1()))
    return 2


# ══════════════════════════════════════════════
# Arithmetic / logic
# ══════════════════════════════════════════════
# Register form: r1 <- r1 op r2.  Memory form: r <- r op Mem[ea].

def _binary_r(op: Callable[[int, int], int]) -> Handler:
    def handler(ctx: ExecContext) -> int:
        r1 = ctx.gr1()
        result = op(ctx.regs.get_gr(r1), ctx.regs.get_gr(ctx.gr2_or_index()))
        ctx.regs.set_gr(r1, result)
        ctx.set_flags(result)
        return 1
    return handler


def _binary_m(op: Callable[[int, int], int]) -> Handler:
    def handler(ctx: ExecContext) -> int:
        r = ctx.gr1()
        result = op(ctx.regs.get_gr(r), ctx.mem.read(ctx.effective_address()))
        ctx.regs.set_gr(r, result)
        ctx.set_flags(result)
        return 2
    return handler


def _add(a: int, b: int) -> int:
    return a + b


def _sub(a: int, b: int) -> int:
    return a - b


def _and(a: int, b: int) -> int:
    return a & b


def _or(a: int, b: int) -> int:
    return a | b


def _xor(a: int, b: int) -> int:
    return a ^ b


adda_r = _binary_r(_add)
adda_m = _binary_m(_add)
suba_r = _binary_r(_sub)
suba_m = _binary_m(_sub)
and_r = _binary_r(_and)
and_m = _binary_m(_and)
or_r = _binary_r(_or)
or_m = _binary_m(_or)
xor_r = _binary_r(_xor)
xor_m = _binary_m(_xor)


def cpa_r(ctx: ExecContext) -> int:
    """CPA r1,r2 — flags only."""
    ctx.set_flags(ctx.regs.get_gr(ctx.gr1()) - ctx.regs.get_gr(ctx.gr2_or_index()))
    return 1


def cpa_m(ctx: ExecContext) -> int:
    """CPA r,adr,x — flags only."""
    ctx.set_flags(ctx.regs.get_gr(ctx.gr1()) - ctx.mem.read(ctx.effective_address()))
    return 2


def nop(ctx: ExecContext) -> int:
    return 1


# ══════════════════════════════════════════════
# Jumps
# ══════════════════════════════════════════════

def _jump_if(condition: Callable[[ExecContext], bool]) -> Handler:
    def handler(ctx: ExecContext) -> int:
        if condition(ctx):
            ctx.regs.PC = ctx.effective_address()
            return 0
        return 2
    return handler


jump = _jump_if(lambda ctx: True)
jze = _jump_if(lambda ctx: ctx.regs.zero)
jnz = _jump_if(lambda ctx: not ctx.regs.zero)
jmi = _jump_if(lambda ctx: ctx.regs.negative)
jpl = _jump_if(lambda ctx: not ctx.regs.negative and not ctx.regs.zero)


# ══════════════════════════════════════════════
# SVC — I/O bridge
# ══════════════════════════════════════════════

def svc(ctx: ExecContext) -> int:
    """SVC type — words at PC+1/PC+2 hold the data and length addresses.

    type 1 (IN):  read one line, store one character code per word from
                  the data address, store the character count at the
                  length address.
    type 2 (OUT): emit Mem[length address] characters starting at the
                  data address.
    Other types are no-ops of length 1.
    """
    svc_type = ctx.gr2_or_index()
    pc = ctx.regs.PC

    if svc_type == SVC_IN:
        # request_line may raise InputPending; nothing has been written yet
        value = ctx.io.request_line(INPUT_PROMPT)
        data_addr = ctx.mem.read(pc + 1)
        length_addr = ctx.mem.read(pc + 2)
        for i, ch in enumerate(value):
            ctx.mem.write(data_addr + i, ord(ch))
        ctx.mem.write(length_addr, len(value))
        logger.debug("IN  to %s length %d", to_word_hex(data_addr), len(value))
        return 3

    if svc_type == SVC_OUT:
        data_addr = ctx.mem.read(pc + 1)
        length_addr = ctx.mem.read(pc + 2)
        length = ctx.mem.read(length_addr)
        logger.debug("OUT from %s length %d", to_word_hex(data_addr), length)
        text = ''.join(chr(ctx.mem.read(data_addr + i) & 0xFFFF) for i in range(length))
        ctx.io.emit(text)
        return 3

    logger.warning("SVC with unknown sub-type %d at %s ignored",
                   svc_type, to_word_hex(pc))
    return 1


# ══════════════════════════════════════════════
# Dispatch table
# ══════════════════════════════════════════════

def build_dispatch() -> Dict[int, Handler]:
    """Build the opcode -> handler table handed to the Machine."""
    return {
        OP['NOP'][1]:  nop,
        OP['LD'][1]:   ld_r,
        OP['LD'][2]:   ld_m,
        OP['ST'][2]:   st,
        OP['LAD'][2]:  lad,
        OP['ADDA'][1]: adda_r,
        OP['ADDA'][2]: adda_m,
        OP['SUBA'][1]: suba_r,
        OP['SUBA'][2]: suba_m,
        OP['AND'][1]:  and_r,
        OP['AND'][2]:  and_m,
        OP['OR'][1]:   or_r,
        OP['OR'][2]:   or_m,
        OP['XOR'][1]:  xor_r,
        OP['XOR'][2]:  xor_m,
        OP['CPA'][1]:  cpa_r,
        OP['CPA'][2]:  cpa_m,
        OP['JMI'][2]:  jmi,
        OP['JNZ'][2]:  jnz,
        OP['JZE'][2]:  jze,
        OP['JUMP'][2]: jump,
        OP['JPL'][2]:  jpl,
        OP['SVC'][2]:  svc,
    }
