# chip8vm, a threaded Chip-8 interpreter.
# Lindsay Gaff <lindsaygaff@gmail.com>

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

from dataclasses import dataclass
from enum import Enum

from .display import VIDEO_X, VIDEO_Y
from .machine import CPU_CLOCK
from .scheduler import clamp_clock


class KeyboardBinding(Enum):
    QWERTY = "QWERTY"
    AZERTY = "AZERTY"


@dataclass
class Chip8Config:
    """Emulator settings.

    window_width and window_height are hints, the window is resized to
    the largest whole pixel scale that fits them.
    """
    window_title: str = "chip8vm"
    window_width: int = 800
    window_height: int = 600
    keypad_binding: KeyboardBinding = KeyboardBinding.QWERTY
    cpu_clock: int = CPU_CLOCK
    shift_uses_vy: bool = False

    def __post_init__(self):
        self.cpu_clock = clamp_clock(self.cpu_clock)


def get_display_size(width, height):
    """Return (scale, width, height) for the largest whole scale fitting width x height"""
    scale = max(min(width // VIDEO_X, height // VIDEO_Y), 1)
    return scale, scale * VIDEO_X, scale * VIDEO_Y
