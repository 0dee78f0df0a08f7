# chip8vm, a threaded Chip-8 interpreter.
# Lindsay Gaff <lindsaygaff@gmail.com>

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

from .display import Display
from .errors import Chip8Error, MachineFault, RomLoadError
from .keypad import Keypad, Keystate
from .machine import FLAG, Chip8
from .scheduler import VMThread

__version__ = "0.1.0"
