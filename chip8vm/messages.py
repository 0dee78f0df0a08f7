# chip8vm, a threaded Chip-8 interpreter.
# Lindsay Gaff <lindsaygaff@gmail.com>

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

"""Messages exchanged between the frontend and the VM thread.

The frontend puts commands on the VM's inbound queue, the VM thread puts
notifications on its outbound queue. Nothing else is shared.
"""

from dataclasses import dataclass
from typing import Tuple

from .keypad import Keystate

## Frontend -> VM ##


@dataclass(frozen=True)
class SetRunning:
    running: bool


@dataclass(frozen=True)
class SetKeyState:
    index: int
    state: Keystate


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Quit:
    pass


## VM -> Frontend ##


@dataclass(frozen=True)
class BeepStateChanged:
    beeping: bool


@dataclass(frozen=True)
class DisplaySnapshot:
    # gfx[y][x], 1 is lit
    gfx: Tuple[Tuple[int, ...], ...]


@dataclass(frozen=True)
class Finished:
    pass
