"""
Tests for the pygame frontend: CLI parser, keyboard bindings and event handling.
"""
import pytest

from chip8vm.config import KeyboardBinding
from chip8vm.keypad import Keystate
from chip8vm.machine import CPU_CLOCK
from chip8vm.messages import Quit, Reset, SetKeyState, SetRunning

pygame = pytest.importorskip("pygame")

from chip8vm import frontend  # noqa: E402


class TestKeyBindings:
    @pytest.mark.parametrize("binding", list(KeyboardBinding))
    def test_every_key_mapped_once(self, binding):
        keys = frontend.key_bindings(binding)
        assert len(keys) == 16
        assert sorted(keys.values()) == list(range(16))

    def test_layouts_differ(self):
        qwerty = frontend.key_bindings(KeyboardBinding.QWERTY)
        azerty = frontend.key_bindings(KeyboardBinding.AZERTY)
        assert qwerty[pygame.K_q] == 0x4
        assert azerty[pygame.K_a] == 0x4
        assert qwerty[pygame.K_x] == azerty[pygame.K_x] == 0x0


class TestArguments:
    def test_defaults(self):
        args = frontend.aparser.parse_args(["game.ch8"])
        assert args.program == "game.ch8"
        assert args.cpu_clock == CPU_CLOCK
        assert args.keyboard == "QWERTY"
        assert not args.shift_vy
        assert not args.debug

    def test_options(self):
        args = frontend.aparser.parse_args(["-c", "900", "-k", "AZERTY", "--shift-vy", "game.ch8"])
        assert args.cpu_clock == 900
        assert KeyboardBinding(args.keyboard) is KeyboardBinding.AZERTY
        assert args.shift_vy

    def test_missing_rom_exits_with_error(self, tmp_path):
        assert frontend.main([str(tmp_path / "missing.ch8")]) == 1


class FakeVM:
    def __init__(self):
        self.sent = []

    def send(self, command):
        self.sent.append(command)


class TestEvents:
    def event(self, type, key=None):
        if key is None:
            return pygame.event.Event(type)
        return pygame.event.Event(type, key=key)

    def test_keypad_keys(self):
        vm = FakeVM()
        keys = frontend.key_bindings(KeyboardBinding.QWERTY)
        frontend.handle_event(self.event(pygame.KEYDOWN, pygame.K_w), vm, keys, True)
        frontend.handle_event(self.event(pygame.KEYUP, pygame.K_w), vm, keys, True)
        assert vm.sent == [SetKeyState(0x5, Keystate.PRESSED), SetKeyState(0x5, Keystate.RELEASED)]

    def test_control_keys(self):
        vm = FakeVM()
        keys = frontend.key_bindings(KeyboardBinding.QWERTY)
        running = frontend.handle_event(self.event(pygame.KEYDOWN, pygame.K_p), vm, keys, True)
        assert running is False
        frontend.handle_event(self.event(pygame.KEYDOWN, pygame.K_BACKSPACE), vm, keys, running)
        frontend.handle_event(self.event(pygame.KEYDOWN, pygame.K_ESCAPE), vm, keys, running)
        frontend.handle_event(self.event(pygame.QUIT), vm, keys, running)
        assert vm.sent == [SetRunning(False), Reset(), Quit(), Quit()]
