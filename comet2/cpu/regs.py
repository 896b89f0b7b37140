"""
COMET II Register File — general registers, PC and condition flags.

Register model:
  GR0-GR7  — general registers (GR1-GR7 double as index registers)
  PC       — program counter (word address of the current instruction)
  FR       — flag register, three 1-bit flags:
        OF (overflow) — never set by this machine, always written as 0
        SF (sign)     — result was negative
        ZF (zero)     — result was zero

Flag summary written by every arithmetic/compare instruction:
  result > 0  → OF=0 SF=0 ZF=0
  result == 0 → OF=0 SF=0 ZF=1
  result < 0  → OF=0 SF=1 ZF=0
"""

from typing import Tuple

from ..config import GR_COUNT
from ..errors import InvalidRegister


class Registers:
    """COMET II CPU register set."""

    __slots__ = ('GR', 'PC', 'OF', 'SF', 'ZF', 'steps')

    def __init__(self):
        self.GR = [0] * GR_COUNT  # General registers GR0-GR7
        self.PC: int = 0          # Program counter
        self.OF: int = 0          # Overflow flag
        self.SF: int = 0          # Sign flag
        self.ZF: int = 0          # Zero flag
        self.steps: int = 0       # Executed instruction counter

    # --- General registers ---

    def get_gr(self, index: int) -> int:
        if not 0 <= index < GR_COUNT:
            raise InvalidRegister(index)
        return self.GR[index]

    def set_gr(self, index: int, value: int):
        if not 0 <= index < GR_COUNT:
            raise InvalidRegister(index)
        self.GR[index] = value

    # --- Flags ---

    def set_flags(self, of: int, sf: int, zf: int):
        self.OF = of
        self.SF = sf
        self.ZF = zf

    @property
    def flags(self) -> Tuple[int, int, int]:
        """(OF, SF, ZF)"""
        return (self.OF, self.SF, self.ZF)

    @property
    def zero(self) -> bool:
        return self.ZF == 1

    @property
    def negative(self) -> bool:
        return self.SF == 1

    # --- Display ---

    def display(self) -> str:
        """Format register state for the debugger dump."""
        grs = ' '.join(f"GR{i}=#{v & 0xFFFF:04X}" for i, v in enumerate(self.GR))
        return (f"PC=#{self.PC:04X} {grs} "
                f"FR=[OF={self.OF} SF={self.SF} ZF={self.ZF}]")

    def __str__(self) -> str:
        return self.display()
