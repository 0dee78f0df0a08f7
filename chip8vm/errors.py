# chip8vm, a threaded Chip-8 interpreter.
# Lindsay Gaff <lindsaygaff@gmail.com>

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.


class Chip8Error(Exception):
    pass


class RomLoadError(Chip8Error):
    """The program could not be read into memory"""


class MachineFault(Chip8Error):
    """An instruction touched the stack or memory out of bounds"""

    def __init__(self, message, pc=None, opcode=None):
        self.pc = pc
        self.opcode = opcode
        if pc is not None and opcode is not None:
            message = f"{message} (OP 0x{opcode:04x} at {pc:04x})"
        super().__init__(message)
