# chip8vm, a threaded Chip-8 interpreter.
# Lindsay Gaff <lindsaygaff@gmail.com>

# To the extent possible under law, the person who associated CC0 with
# chip8vm has waived all copyright and related or neighboring rights
# to chip8vm.

# You should have received a copy of the CC0 legalcode along with this
# work.  If not, see <http://creativecommons.org/publicdomain/zero/1.0/>.

"""Runs a Chip8 on its own thread.

Two clocks are kept: the instruction clock at the machine's clock_hz
and the timer clock at TIMER_HZ. Python's sleep() is not fine grained
enough to hit either one per tick, so each loop iteration catches up on
every tick that fell due since the last one and then sleeps for a short
fixed interval. Timing is best effort.
"""

import logging
import queue
import threading
import time

from .errors import MachineFault
from .keypad import KEY_COUNT, Keystate
from .machine import MAX_CPU_CLOCK, TIMER_HZ
from .messages import (BeepStateChanged, DisplaySnapshot, Finished, Quit,
                       Reset, SetKeyState, SetRunning)

log = logging.getLogger(__name__)

TIMER_PERIOD = 1.0 / TIMER_HZ
# Sleep between loop iterations
IDLE_SLEEP = 0.001
# Ticks further behind than this are dropped instead of replayed
MAX_LAG = 0.1


def clamp_clock(hz):
    """Bound an instruction clock to [1, MAX_CPU_CLOCK]"""
    clamped = min(max(int(hz), 1), MAX_CPU_CLOCK)
    if clamped != hz:
        log.warning(f"CPU clock {hz} Hz out of range, using {clamped} Hz")
    return clamped


class VMState:
    """Everything the VM thread owns between loop iterations"""

    def __init__(self, machine, rom=b"", running=True):
        self.machine = machine
        machine.clock_hz = clamp_clock(machine.clock_hz)
        # Kept so Reset can reload the program
        self.rom = bytes(rom)
        self.running = running
        self.quit = False
        # Last key press seen, None once it has been released
        self.last_pressed = None
        self.beeping = False
        self.next_cycle = 0.0
        self.next_timer = 0.0

    def restart_clocks(self, now):
        self.next_cycle = now
        self.next_timer = now + TIMER_PERIOD


def handle_command(state, command, now):
    """Apply one inbound command to the VM state"""
    machine = state.machine
    if isinstance(command, SetRunning):
        if command.running != state.running:
            log.info("Emulation resumed" if command.running else "Emulation paused")
            state.running = command.running
            if state.running:
                state.restart_clocks(now)
    elif isinstance(command, SetKeyState):
        handle_key(state, command.index, command.state)
    elif isinstance(command, Reset):
        log.info("Resetting the virtual machine")
        machine.reset()
        machine.load(state.rom)
        state.last_pressed = None
        state.restart_clocks(now)
    elif isinstance(command, Quit):
        log.info("Quit requested")
        state.quit = True
    else:
        log.warning(f"Unknown command {command!r} - ignoring")


def handle_key(state, index, keystate):
    """Route a key event either to the keypad or to a pending FX0A wait.

    While the machine waits for a key, a press of any key other than the
    last one delivered resolves the wait and is not recorded on the
    keypad. Releases always reach the keypad, and during a wait they
    also clear the last delivered key.
    """
    machine = state.machine
    if not 0 <= index < KEY_COUNT:
        log.warning(f"Invalid key index {index} - ignoring")
        return
    if keystate is Keystate.PRESSED:
        if machine.is_waiting_for_key():
            if index != state.last_pressed:
                log.debug(f"Key {index:1x} ends the wait for a key press")
                machine.end_wait_for_key(index)
        else:
            machine.keypad.set_state(index, Keystate.PRESSED)
        state.last_pressed = index
    else:
        machine.keypad.set_state(index, Keystate.RELEASED)
        if machine.is_waiting_for_key() or index == state.last_pressed:
            state.last_pressed = None


def drain_commands(state, inbound, now):
    """Apply the commands queued right now without waiting for more"""
    for _ in range(inbound.qsize()):
        try:
            command = inbound.get_nowait()
        except queue.Empty:
            break
        handle_command(state, command, now)
        if state.quit:
            break


def run_instructions(state, now):
    """Run every instruction tick due by now. Returns True when the program is done."""
    machine = state.machine
    period = 1.0 / machine.clock_hz
    if state.next_cycle < now - MAX_LAG:
        state.next_cycle = now
    while state.next_cycle <= now:
        if machine.is_waiting_for_key():
            state.next_cycle = now + period
            return False
        state.next_cycle += period
        if machine.emulate_cycle():
            return True
    return False


def run_timers(state, now):
    if state.next_timer < now - MAX_LAG:
        state.next_timer = now
    while state.next_timer <= now:
        state.machine.step_timers()
        state.next_timer += TIMER_PERIOD


def publish(state, outbound):
    """Push a snapshot of a dirty display and any beep transition"""
    machine = state.machine
    if machine.display.dirty:
        outbound.put(DisplaySnapshot(machine.display.snapshot()))
        machine.display.dirty = False
    beeping = machine.sound_timer > 0
    if beeping != state.beeping:
        state.beeping = beeping
        outbound.put(BeepStateChanged(beeping))


def run_vm(state, inbound, outbound, clock=time.monotonic, sleep=time.sleep):
    """The VM thread main loop. Always ends by sending Finished."""
    log.info(f"VM thread starting, CPU clock {state.machine.clock_hz} Hz")
    state.restart_clocks(clock())
    try:
        while True:
            now = clock()
            drain_commands(state, inbound, now)
            if state.quit:
                break
            done = False
            if state.running:
                done = run_instructions(state, now)
                run_timers(state, now)
            publish(state, outbound)
            if done:
                log.info("The program ended properly.")
                break
            sleep(IDLE_SLEEP)
    except MachineFault as e:
        log.error(f"Emulation halted: {e}")
    finally:
        outbound.put(Finished())
        log.info("VM thread finished")


class VMThread(threading.Thread):
    """A Chip8 running on its own thread, driven through two queues.

    Use send() to post commands and poll() to collect what the VM has
    produced since the last call. Neither blocks.
    """

    def __init__(self, machine, rom=b"", running=True):
        super().__init__(name="chip8vm", daemon=True)
        self.inbound = queue.Queue()
        self.outbound = queue.Queue()
        self.state = VMState(machine, rom, running)

    def run(self):
        run_vm(self.state, self.inbound, self.outbound)

    def send(self, command):
        self.inbound.put(command)

    def poll(self):
        messages = []
        while True:
            try:
                messages.append(self.outbound.get_nowait())
            except queue.Empty:
                return messages
