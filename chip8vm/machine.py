# chip8vm, a threaded Chip-8 interpreter.
# Lindsay Gaff <lindsaygaff@gmail.com>

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

"""The Chip-8 interpreter core.

References used for the instruction semantics:
http://en.wikipedia.org/wiki/CHIP-8
http://mattmik.com/chip8.html
http://devernay.free.fr/hacks/chip8/C8TECH10.HTM
"""

import logging
import random

from .display import Display, FONT_GLYPH_SIZE, FONT_LOAD, FONT_MAP
from .errors import MachineFault, RomLoadError
from .keypad import KEY_COUNT, Keypad, Keystate

log = logging.getLogger(__name__)

## CONSTANTS ##

# Clock speeds used by Chip-8
TIMER_HZ = 60
CPU_CLOCK = 600
# Upper bound on the instruction clock, keeps a runaway setting from
# pinning the VM thread.
MAX_CPU_CLOCK = 5000

TOTAL_RAM = 4096
LOAD_POS = 0x200
# Last address with room for a full 2 byte fetch
END_POS = TOTAL_RAM - 2

REGISTER_COUNT = 16
STACK_DEPTH = 16
# VF doubles as the carry, borrow and collision flag
FLAG = 0xF


def decode(op):
    """Split an opcode into its four nibbles, most significant first"""
    return (op >> 12 & 0xF, op >> 8 & 0xF, op >> 4 & 0xF, op & 0xF)


_ALU_MNEMONICS = {
    0x0: "LD", 0x1: "OR", 0x2: "AND", 0x3: "XOR",
    0x4: "ADD", 0x5: "SUB", 0x6: "SHR", 0x7: "SUBN", 0xE: "SHL",
}

_IO_MNEMONICS = {
    0x07: "LD V{x:1X}, DT",
    0x0A: "LD V{x:1X}, K",
    0x15: "LD DT, V{x:1X}",
    0x18: "LD ST, V{x:1X}",
    0x1E: "ADD I, V{x:1X}",
    0x29: "LD F, V{x:1X}",
    0x33: "LD B, V{x:1X}",
    0x55: "LD [I], V{x:1X}",
    0x65: "LD V{x:1X}, [I]",
}


def disassemble(op):
    """Return the assembler mnemonic for op, or ??? if it isn't an instruction"""
    a, x, y, n = decode(op)
    nnn = op & 0x0FFF
    kk = op & 0x00FF
    if op == 0x00E0:
        return "CLS"
    elif op == 0x00EE:
        return "RET"
    elif a == 0x1:
        return f"JP {nnn:03X}"
    elif a == 0x2:
        return f"CALL {nnn:03X}"
    elif a == 0x3:
        return f"SE V{x:1X}, {kk:02X}"
    elif a == 0x4:
        return f"SNE V{x:1X}, {kk:02X}"
    elif a == 0x5 and n == 0x0:
        return f"SE V{x:1X}, V{y:1X}"
    elif a == 0x6:
        return f"LD V{x:1X}, {kk:02X}"
    elif a == 0x7:
        return f"ADD V{x:1X}, {kk:02X}"
    elif a == 0x8 and n in _ALU_MNEMONICS:
        return f"{_ALU_MNEMONICS[n]} V{x:1X}, V{y:1X}"
    elif a == 0x9 and n == 0x0:
        return f"SNE V{x:1X}, V{y:1X}"
    elif a == 0xA:
        return f"LD I, {nnn:03X}"
    elif a == 0xB:
        return f"JP V0, {nnn:03X}"
    elif a == 0xC:
        return f"RND V{x:1X}, {kk:02X}"
    elif a == 0xD:
        return f"DRW V{x:1X}, V{y:1X}, {n:1X}"
    elif a == 0xE and kk == 0x9E:
        return f"SKP V{x:1X}"
    elif a == 0xE and kk == 0xA1:
        return f"SKNP V{x:1X}"
    elif a == 0xF and kk in _IO_MNEMONICS:
        return _IO_MNEMONICS[kk].format(x=x)
    return "???"


class Chip8:
    """Chip-8 virtual machine.

    Owns the memory, registers, stack, timers, Display and Keypad. The
    timers are not driven from here, whoever runs the machine must call
    step_timers() at TIMER_HZ.
    """

    def __init__(self, clock_hz=CPU_CLOCK, shift_uses_vy=False, rng=None):
        # The CPU clock frequency, the number of instructions to run per second
        self.clock_hz = clock_hz
        # 8XY6/8XYE shift VY into VX when set, VX in place otherwise
        self.shift_uses_vy = shift_uses_vy
        self.rng = rng or random.Random()
        self.display = Display()
        self.keypad = Keypad()
        self.reset()

    def reset(self):
        """Return to power-on state. The clock and shift settings are kept."""
        self.memory = bytearray(TOTAL_RAM)
        self.memory[FONT_LOAD:FONT_LOAD + len(FONT_MAP)] = FONT_MAP
        self.v = [0] * REGISTER_COUNT
        self.i = 0
        self.pc = LOAD_POS
        self.stack = [0] * STACK_DEPTH
        self.sp = 0
        self.delay_timer = 0
        self.sound_timer = 0
        self.opcode = 0
        self.waiting_for_key = False
        self.wait_register = 0
        for key in range(len(self.keypad.keys)):
            self.keypad.set_state(key, Keystate.RELEASED)
        self.display.clear()
        log.debug(f"Main memory {TOTAL_RAM:d} bytes initialised, fonts loaded to {FONT_LOAD:04x}")

    ## Accessors ##

    def register(self, n):
        return self.v[n]

    @property
    def index(self):
        return self.i

    @property
    def wait_for_key(self):
        """(active, target register) of the wait-for-key state"""
        return (self.waiting_for_key, self.wait_register)

    def is_waiting_for_key(self):
        return self.waiting_for_key

    def should_shift_op_use_vy(self, flag):
        self.shift_uses_vy = flag

    ## Program loading ##

    def load(self, data):
        """Copy the program bytes into memory starting at the program counter"""
        program = bytes(data)
        if len(program) > TOTAL_RAM - self.pc:
            raise RomLoadError(f"Program is too large: {len(program)} bytes, "
                               f"{TOTAL_RAM - self.pc} available at 0x{self.pc:04x}")
        self.memory[self.pc:self.pc + len(program)] = program
        log.info(f"Program length {len(program)} bytes loaded at 0x{self.pc:04x}")

    def load_rom(self, path):
        """Read the ROM file at path and load it. Raises RomLoadError."""
        log.info(f"Loading program {path}")
        try:
            with open(path, 'rb') as p:
                program = p.read()
        except OSError as e:
            raise RomLoadError(f"couldn't open rom file \"{path}\" : {e.strerror or e}") from e
        self.load(program)
        return program

    ## Execution ##

    def emulate_cycle(self):
        """Fetch and execute one instruction. Returns True once the program is done."""
        if self.pc >= END_POS:
            return True
        if self.waiting_for_key:
            return False
        if self.pc < LOAD_POS:
            raise MachineFault(f"Fetch outside program memory at {self.pc:04x}")
        instruction = self.memory[self.pc] << 8 | self.memory[self.pc + 1]
        self.execute_opcode(instruction)
        return False

    def step_timers(self):
        """One TIMER_HZ tick of the delay and sound timers"""
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    def end_wait_for_key(self, key_index):
        """Resolve an FX0A wait with the index of the key that was pressed"""
        if not self.waiting_for_key:
            log.warning("end_wait_for_key called but the VM wasn't waiting for a key press - ignoring")
            return
        self.v[self.wait_register] = key_index & 0xFF
        self.waiting_for_key = False
        self.pc += 2

    def execute_opcode(self, op):
        """Decode and execute a single opcode, advancing pc as the instruction requires"""
        self.opcode = op
        a, x, y, n = decode(op)
        nnn = op & 0x0FFF
        kk = op & 0x00FF
        if log.isEnabledFor(logging.DEBUG):
            log.debug(f"{self.pc:04x} | OP 0x{op:04x} - {disassemble(op)}")

        if op == 0x00E0: # CLS - clear the screen
            self.display.clear()
            self.pc += 2
        elif op == 0x00EE: # RET - return from subroutine
            self.ins_ret()
        elif a == 0x1: # 0x1nnn JP nnn
            self.pc = nnn
        elif a == 0x2: # 0x2nnn CALL nnn
            self.ins_call(nnn)
        elif a == 0x3: # 0x3xkk SE Vx, kk
            self.skip_if(self.v[x] == kk)
        elif a == 0x4: # 0x4xkk SNE Vx, kk
            self.skip_if(self.v[x] != kk)
        elif a == 0x5 and n == 0x0: # 0x5xy0 SE Vx, Vy
            self.skip_if(self.v[x] == self.v[y])
        elif a == 0x6: # 0x6xkk LD Vx, kk
            self.v[x] = kk
            self.pc += 2
        elif a == 0x7: # 0x7xkk ADD Vx, kk - no carry
            self.v[x] = (self.v[x] + kk) & 0xFF
            self.pc += 2
        elif a == 0x8 and n in _ALU_MNEMONICS: # 0x8xyn ALU ops
            self.ins_alu(x, y, n)
            self.pc += 2
        elif a == 0x9 and n == 0x0: # 0x9xy0 SNE Vx, Vy
            self.skip_if(self.v[x] != self.v[y])
        elif a == 0xA: # 0xAnnn LD I, nnn
            self.i = nnn
            self.pc += 2
        elif a == 0xB: # 0xBnnn JP V0, nnn
            self.pc = nnn + self.v[0]
        elif a == 0xC: # 0xCxkk RND Vx, kk
            self.v[x] = self.rng.randint(0, 255) & kk
            self.pc += 2
        elif a == 0xD: # 0xDxyn DRW Vx, Vy, n
            self.ins_draw(x, y, n)
            self.pc += 2
        elif a == 0xE and kk == 0x9E: # 0xEx9E SKP Vx
            self.skip_if(self.key_pressed(self.v[x]))
        elif a == 0xE and kk == 0xA1: # 0xExA1 SKNP Vx
            self.skip_if(not self.key_pressed(self.v[x]))
        elif a == 0xF and kk in _IO_MNEMONICS:
            self.ins_io(x, kk)
        else:
            log.warning(f"Not implemented opcode {op:04X} at {self.pc:04X}")
            self.pc += 2

    ## Instructions ##

    def skip_if(self, condition):
        self.pc += 4 if condition else 2

    def ins_ret(self):
        if self.sp == 0:
            raise MachineFault("Stack underflow", self.pc, self.opcode)
        self.sp -= 1
        # The stack holds the address of the CALL itself
        self.pc = self.stack[self.sp] + 2

    def ins_call(self, nnn):
        if self.sp >= STACK_DEPTH:
            raise MachineFault("Stack overflow", self.pc, self.opcode)
        self.stack[self.sp] = self.pc
        self.sp += 1
        self.pc = nnn

    def ins_alu(self, x, y, op):
        vx = self.v[x]
        vy = self.v[y]
        if op == 0x0:
            self.v[x] = vy
        elif op == 0x1:
            self.v[x] = vx | vy
        elif op == 0x2:
            self.v[x] = vx & vy
        elif op == 0x3:
            self.v[x] = vx ^ vy
        elif op == 0x4:
            # ADD Vx, Vy, set carry flag if > 255. Truncate to 8 bits.
            result = vx + vy
            self.v[x] = result & 0xFF
            self.v[FLAG] = 1 if result > 0xFF else 0
        elif op == 0x5:
            # SUB Vx, Vy. Flag set on borrow.
            result = vx - vy
            self.v[x] = result & 0xFF
            self.v[FLAG] = 1 if result < 0 else 0
        elif op == 0x6:
            # SHR. Flag gets the shifted out LSB.
            src = vy if self.shift_uses_vy else vx
            self.v[x] = src >> 1
            self.v[FLAG] = src & 0x01
        elif op == 0x7:
            # SUBN Vx, Vy. Flag set on borrow.
            result = vy - vx
            self.v[x] = result & 0xFF
            self.v[FLAG] = 1 if result < 0 else 0
        elif op == 0xE:
            # SHL. Flag gets the MSB masked in place, so 0x00 or 0x80.
            src = vy if self.shift_uses_vy else vx
            self.v[x] = (src << 1) & 0xFF
            self.v[FLAG] = src & 0x80

    def ins_draw(self, x, y, n):
        """Draw the n-row sprite at [I] to (Vx, Vy), VF reports collision"""
        self.check_memory(self.i, n)
        sprite = self.memory[self.i:self.i + n]
        collision = self.display.draw(self.v[x], self.v[y], sprite)
        self.v[FLAG] = 1 if collision else 0

    def ins_io(self, x, code):
        if code == 0x07:
            self.v[x] = self.delay_timer
        elif code == 0x0A:
            # Halt until the runner calls end_wait_for_key, pc stays put
            self.waiting_for_key = True
            self.wait_register = x
            return
        elif code == 0x15:
            self.delay_timer = self.v[x]
        elif code == 0x18:
            self.sound_timer = self.v[x]
        elif code == 0x1E:
            self.i = (self.i + self.v[x]) & 0xFFFF
        elif code == 0x29:
            self.i = FONT_LOAD + FONT_GLYPH_SIZE * self.v[x]
        elif code == 0x33:
            self.check_memory(self.i, 3)
            value = self.v[x]
            self.memory[self.i] = value // 100
            self.memory[self.i + 1] = value // 10 % 10
            self.memory[self.i + 2] = value % 10
        elif code == 0x55:
            self.check_memory(self.i, x + 1)
            for n in range(x + 1):
                self.memory[self.i + n] = self.v[n]
            self.i += x + 1
        elif code == 0x65:
            self.check_memory(self.i, x + 1)
            for n in range(x + 1):
                self.v[n] = self.memory[self.i + n]
            self.i += x + 1
        self.pc += 2

    def check_memory(self, start, length):
        if start + length > TOTAL_RAM:
            raise MachineFault(f"Memory access error at {start:04x}, {length} bytes", self.pc, self.opcode)

    def key_pressed(self, key):
        if key >= KEY_COUNT:
            raise MachineFault(f"Invalid key index {key}", self.pc, self.opcode)
        return self.keypad.is_pressed(key)
