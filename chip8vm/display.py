# chip8vm, a threaded Chip-8 interpreter.
# Lindsay Gaff <lindsaygaff@gmail.com>

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

"""The Chip-8 framebuffer.

The screen is 64x32 monochrome pixels, addressed as:

    +-----------------+
    |(0,0)      (63,0)|
    |                 |
    |(0,31)    (63,31)|
    +-----------------+
"""

VIDEO_X = 64
VIDEO_Y = 32

# Chip-8 ROM font map. Each glyph is 4x5 pixels stored as 5 bytes,
# only the high nibble of each byte is used. Loaded at address 0.
FONT_LOAD = 0x00
FONT_GLYPH_SIZE = 5
FONT_MAP = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0, # 0
    0x20, 0x60, 0x20, 0x20, 0x70, # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0, # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0, # 3
    0x90, 0x90, 0xF0, 0x10, 0x10, # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0, # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0, # 6
    0xF0, 0x10, 0x20, 0x40, 0x40, # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0, # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0, # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90, # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0, # B
    0xF0, 0x80, 0x80, 0x80, 0xF0, # C
    0xE0, 0x90, 0x90, 0x90, 0xE0, # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0, # E
    0xF0, 0x80, 0xF0, 0x80, 0x80  # F
])


def blank_screen():
    """Allocate a cleared VIDEO_X by VIDEO_Y pixel grid"""
    return [[0 for x in range(VIDEO_X)] for y in range(VIDEO_Y)]


class Display:
    """64x32 black and white screen.

    gfx[y][x] holds one pixel, 1 is lit and 0 is dark. dirty is set by
    every mutating operation and cleared by whoever renders the screen.
    """

    def __init__(self):
        self.gfx = blank_screen()
        self.dirty = False

    def clear(self):
        """Set every pixel dark"""
        self.gfx = blank_screen()
        self.dirty = True

    def draw(self, x, y, sprite):
        """XOR the rows of sprite onto the screen with (x, y) as the top left corner.

        Each byte of sprite is one row, most significant bit leftmost.
        Coordinates wrap around the screen edges. Returns True if any lit
        pixel was switched off (a collision).
        """
        collision = False
        for row, byte in enumerate(sprite):
            y_off = (y + row) % VIDEO_Y
            for col in range(8):
                newpx = byte >> (7 - col) & 0x1
                if not newpx:
                    continue
                x_off = (x + col) % VIDEO_X
                if self.gfx[y_off][x_off]:
                    collision = True
                self.gfx[y_off][x_off] ^= 1
        self.dirty = True
        return collision

    def pixel(self, x, y):
        return self.gfx[y][x]

    def snapshot(self):
        """Return a detached copy of the pixel grid"""
        return tuple(tuple(row) for row in self.gfx)
