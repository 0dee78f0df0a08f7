# chip8vm, a threaded Chip-8 interpreter.
# Lindsay Gaff <lindsaygaff@gmail.com>

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

import sys
import logging
import argparse
from array import array

import pygame

from .config import Chip8Config, KeyboardBinding, get_display_size
from .display import VIDEO_X, VIDEO_Y
from .errors import RomLoadError
from .keypad import Keystate
from .machine import CPU_CLOCK, MAX_CPU_CLOCK, Chip8
from .messages import (BeepStateChanged, DisplaySnapshot, Finished, Quit,
                       Reset, SetKeyState, SetRunning)
from .scheduler import VMThread

log = logging.getLogger(__name__)

aparser = argparse.ArgumentParser(prog="chip8vm", description="A threaded Chip-8 emulator")
aparser.add_argument('program',
    help="A compiled Chip-8 program to load")
aparser.add_argument('-c', '--cpu-clock',
    help=f"The CPU clock speed to target in Hz, at most {MAX_CPU_CLOCK}. {CPU_CLOCK} Hz by default",
    metavar="HZ",
    type=int,
    default=CPU_CLOCK)
aparser.add_argument('-k', '--keyboard',
    help="The keyboard layout to map the keypad onto. QWERTY by default",
    choices=[b.value for b in KeyboardBinding],
    default=KeyboardBinding.QWERTY.value)
aparser.add_argument('--shift-vy',
    help="8XY6/8XYE shift VY into VX instead of shifting VX in place",
    action="store_true")
aparser.add_argument('--width',
    help="Window width hint in pixels",
    type=int,
    default=800)
aparser.add_argument('--height',
    help="Window height hint in pixels",
    type=int,
    default=600)
aparser.add_argument('--debug',
    help="Enable verbose debug logging",
    action="store_true")

## CONSTANTS ##

FPS = 60
# Pixel colors for display
PIXEL_ON = (255, 255, 255)
PIXEL_OFF = (64, 64, 64)

BEEP_HZ = 440
BEEP_VOLUME = 4096

# The keypad is mapped onto a 4x4 grid of the keyboard
# beginning at key 1:

# +-----+-----+-----+-----+
# | 1/1 | 2/2 | 3/3 | C/4 |
# +-----+-----+-----+-----+
# | 4/Q | 5/W | 6/E | D/R |
# +-----+-----+-----+-----+
# | 7/A | 8/S | 9/D | E/F |
# +-----+-----+-----+-----+
# | A/Z | 0/X | B/C | F/V |
# +-----+-----+-----+-----+

# Keys in the same place on QWERTY and AZERTY
COMMON_KEYS = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_c: 0xB, pygame.K_v: 0xF,
}

LAYOUT_KEYS = {
    KeyboardBinding.QWERTY: {
        pygame.K_q: 0x4, pygame.K_w: 0x5,
        pygame.K_a: 0x7,
        pygame.K_z: 0xA, pygame.K_x: 0x0,
    },
    KeyboardBinding.AZERTY: {
        pygame.K_a: 0x4, pygame.K_z: 0x5,
        pygame.K_q: 0x7,
        pygame.K_w: 0xA, pygame.K_x: 0x0,
    },
}


def key_bindings(binding):
    """Return the pygame key -> keypad index map for a keyboard layout"""
    keys = dict(COMMON_KEYS)
    keys.update(LAYOUT_KEYS[binding])
    return keys


def init_beep():
    """Build a looping square wave for the sound timer, or None without audio"""
    try:
        pygame.mixer.init(frequency=22050, size=-16, channels=1)
    except pygame.error as e:
        log.warning(f"No audio device, sound disabled: {e}")
        return None
    rate, size, channels = pygame.mixer.get_init()
    if size != -16:
        log.warning(f"Unsupported mixer sample size {size}, sound disabled")
        return None
    period = rate // BEEP_HZ
    wave = [BEEP_VOLUME] * (period // 2) + [-BEEP_VOLUME] * (period - period // 2)
    samples = array('h', [s for s in wave for _ in range(channels)])
    return pygame.mixer.Sound(buffer=samples.tobytes())


def draw_screen(screen, gfx, scale):
    """Paint a display snapshot onto the window"""
    screen.fill(PIXEL_OFF)
    for y in range(VIDEO_Y):
        row = gfx[y]
        for x in range(VIDEO_X):
            if row[x]:
                pygame.draw.rect(screen, PIXEL_ON, (x * scale, y * scale, scale, scale))
    pygame.display.flip()


def handle_event(event, vm, keys, running):
    """Translate one pygame event into VM commands. Returns the new run state."""
    if event.type == pygame.QUIT:
        vm.send(Quit())
    elif event.type == pygame.KEYDOWN:
        if event.key == pygame.K_ESCAPE:
            vm.send(Quit())
        elif event.key == pygame.K_p:
            running = not running
            vm.send(SetRunning(running))
        elif event.key == pygame.K_BACKSPACE:
            vm.send(Reset())
        elif event.key in keys:
            vm.send(SetKeyState(keys[event.key], Keystate.PRESSED))
    elif event.type == pygame.KEYUP:
        if event.key in keys:
            vm.send(SetKeyState(keys[event.key], Keystate.RELEASED))
    return running


def run(config, program):
    """Load program and run it in a window until it ends or the user quits"""
    machine = Chip8(config.cpu_clock, config.shift_uses_vy)
    try:
        rom = machine.load_rom(program)
    except RomLoadError as e:
        log.error(f"Loading error : {e}")
        return 1

    log.info("Initialise display engine")
    pygame.init()
    scale, screen_x, screen_y = get_display_size(config.window_width, config.window_height)
    log.info(f"Display mode {screen_x} x {screen_y}, {scale} pixels per Chip-8 pixel")
    pygame.display.set_caption(config.window_title)
    screen = pygame.display.set_mode([screen_x, screen_y])
    screen.fill(PIXEL_OFF)
    pygame.display.flip()
    beep = init_beep()
    keys = key_bindings(config.keypad_binding)

    vm = VMThread(machine, rom)
    vm.start()
    log.info("Emulation starting")

    clock = pygame.time.Clock()
    running = True
    finished = False
    while not finished:
        for event in pygame.event.get():
            running = handle_event(event, vm, keys, running)
        for message in vm.poll():
            if isinstance(message, DisplaySnapshot):
                draw_screen(screen, message.gfx, scale)
            elif isinstance(message, BeepStateChanged):
                if beep is not None:
                    if message.beeping:
                        beep.play(loops=-1)
                    else:
                        beep.stop()
            elif isinstance(message, Finished):
                finished = True
        clock.tick(FPS)

    vm.join()
    pygame.quit()
    log.info("Emulation halted")
    return 0


def main(argv=None):
    args = aparser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    log.info("chip8vm - a threaded Chip-8 interpreter")

    config = Chip8Config(
        window_title=f"chip8vm - {args.program}",
        window_width=args.width,
        window_height=args.height,
        keypad_binding=KeyboardBinding(args.keyboard),
        cpu_clock=args.cpu_clock,
        shift_uses_vy=args.shift_vy)
    return run(config, args.program)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
