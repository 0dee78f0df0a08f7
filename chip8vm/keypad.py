# chip8vm, a threaded Chip-8 interpreter.
# Lindsay Gaff <lindsaygaff@gmail.com>

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

from enum import Enum

KEY_COUNT = 16

# The Chip-8 keypad layout. Internal key values are identical to
# their face value in hex.

# +---+---+---+---+
# | 1 | 2 | 3 | C |
# +---+---+---+---+
# | 4 | 5 | 6 | D |
# +---+---+---+---+
# | 7 | 8 | 9 | E |
# +---+---+---+---+
# | A | 0 | B | F |
# +---+---+---+---+


class Keystate(Enum):
    PRESSED = True
    RELEASED = False


class Keypad:
    """Current state of the 16 virtual keys. No history is kept."""

    def __init__(self):
        self.keys = [Keystate.RELEASED] * KEY_COUNT

    def _check(self, index):
        if not 0 <= index < KEY_COUNT:
            raise IndexError(f"Invalid key index {index}")

    def get_state(self, index):
        self._check(index)
        return self.keys[index]

    def set_state(self, index, state):
        self._check(index)
        self.keys[index] = state

    def is_pressed(self, index):
        return self.get_state(index) is Keystate.PRESSED
