"""
COMET II machine constants shared by the emulator, assembler and CLI.
"""

from pathlib import Path

GR_COUNT = 8                   # GR0-GR7
DEFAULT_BASE_ADDRESS = 0x0000  # where the assembler starts allocating

# Instruction word layout: opcode(8) | GR1(4) | GR2 or index register(4)
OPCODE_SHIFT = 8
GR1_SHIFT = 4
GR1_MASK = 0xF0
GR2_MASK = 0x0F

# SVC sub-types (low nibble of the SVC word)
SVC_IN = 1
SVC_OUT = 2

INPUT_PROMPT = "[debug] enter a line of text"

LOG_DIR = Path.cwd() / "logs"
