"""
CASL II Assembler for the COMET II machine
==========================================

    ┌──────────┐    ┌──────────┐    ┌──────────────┐    ┌──────────┐
    │ Source   │───>│  Lexer   │───>│  Compiler    │───>│ Memory   │
    │ (.cas)   │    │ (rows)   │    │ pass1/pass2  │    │ (words)  │
    └──────────┘    └──────────┘    └──────────────┘    └──────────┘

    - lexer.py:     line -> [label, mnemonic, op1, op2, op3]
    - assembler.py: LineAnalyzer (per-row encoding) + two-pass Compiler
    - errors.py:    AssemblerError family
"""

__version__ = "0.1.0"

from .errors import (AssemblerError, UndefinedMnemonic, UndefinedLabel,
                     DuplicateLabel, InvalidPseudoInstruction, InvalidOperand)
from .lexer import parse_source, parse_line, LexerError
from .assembler import Compiler, LineAnalyzer, resolve_references, assemble
