"""Exceptions raised while assembling CASL II source."""


class AssemblerError(Exception):
    """Raised on assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class UndefinedMnemonic(AssemblerError):
    """Mnemonic is neither a machine instruction nor a pseudo-instruction."""


class UndefinedLabel(AssemblerError):
    """A recorded reference names a label that was never defined."""
    def __init__(self, label: str, address: int):
        self.label = label
        self.address = address
        super().__init__(f"Undefined label: '{label}' (referenced at #{address:04X})")


class DuplicateLabel(AssemblerError):
    """The same label is defined twice."""


class InvalidPseudoInstruction(AssemblerError):
    """Pseudo-instruction or macro this assembler does not support."""


class InvalidOperand(AssemblerError):
    """Operand count or kind does not fit the instruction."""
