"""Exceptions raised by the COMET II machine."""


class MachineError(Exception):
    """Base class for fatal machine errors."""


class InvalidRegister(MachineError):
    """A general register index outside GR0-GR7 was requested."""
    def __init__(self, index: int):
        self.index = index
        super().__init__(f"Invalid general register: GR{index}")


class UndefinedOpcode(MachineError):
    """The word at PC carries an opcode with no registered handler."""
    def __init__(self, opcode: int, address: int):
        self.opcode = opcode
        self.address = address
        super().__init__(f"Undefined opcode #{opcode:02X} at #{address:04X}")


class StepLimitExceeded(MachineError):
    """execute() ran past its max_steps budget without reaching RET."""
    def __init__(self, max_steps: int, address: int):
        self.max_steps = max_steps
        self.address = address
        super().__init__(f"Stopped after {max_steps} steps at #{address:04X}")


class InputPending(Exception):
    """Raised by an I/O collaborator that has no input line ready yet.

    Not a failure: the SVC input instruction raises it before touching
    any register or memory word, so the same instruction can simply be
    stepped again once a line has been supplied.
    """
    def __init__(self, prompt: str = ""):
        self.prompt = prompt
        super().__init__(prompt or "input pending")
