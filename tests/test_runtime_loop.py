from __future__ import annotations

import unittest
from unittest import mock

from lazystage.runtime import RuntimeLoopCallbacks, RuntimeLoopTiming, run_main_loop


class _FakeTerminal:
    def __init__(self) -> None:
        self.entered = 0
        self.exited = 0

    def __enter__(self) -> _FakeTerminal:
        self.entered += 1
        return self

    def __exit__(self, *exc_info) -> None:
        self.exited += 1

    def size(self) -> tuple[int, int]:
        return (80, 24)


class _Recorder:
    def __init__(self, quit_on: str = "q") -> None:
        self.dirty = True
        self.renders: list[tuple[int, int]] = []
        self.keys: list[str] = []
        self.idle_ticks = 0
        self.quit_on = quit_on

    def callbacks(self, on_idle=None) -> RuntimeLoopCallbacks:
        return RuntimeLoopCallbacks(
            needs_render=lambda: self.dirty,
            render=self.render,
            handle_key=self.handle_key,
            on_idle=on_idle or self.on_idle,
        )

    def render(self, columns: int, lines: int) -> None:
        self.renders.append((columns, lines))
        self.dirty = False

    def handle_key(self, key: str) -> bool:
        self.keys.append(key)
        self.dirty = True
        return key == self.quit_on

    def on_idle(self) -> None:
        self.idle_ticks += 1


class RuntimeLoopTests(unittest.TestCase):
    def _run(self, keys, recorder: _Recorder, terminal: _FakeTerminal, on_idle=None) -> None:
        with mock.patch("lazystage.runtime.loop.read_key", side_effect=list(keys)):
            run_main_loop(terminal, 0, RuntimeLoopTiming(), recorder.callbacks(on_idle))

    def test_keys_dispatch_until_quit_and_idle_ticks_run(self) -> None:
        recorder = _Recorder()
        terminal = _FakeTerminal()

        self._run(["j", "", "", "q"], recorder, terminal)

        self.assertEqual(recorder.keys, ["j", "q"])
        self.assertEqual(recorder.idle_ticks, 2)
        self.assertEqual(recorder.renders, [(80, 24), (80, 24)])
        self.assertEqual((terminal.entered, terminal.exited), (1, 1))

    def test_keyboard_interrupt_does_not_end_loop(self) -> None:
        recorder = _Recorder()

        self._run([KeyboardInterrupt(), "q"], recorder, _FakeTerminal())

        self.assertEqual(recorder.keys, ["q"])

    def test_callback_error_propagates_after_terminal_restore(self) -> None:
        recorder = _Recorder()
        terminal = _FakeTerminal()

        def failing_idle() -> None:
            raise RuntimeError("refresh failed")

        with self.assertRaises(RuntimeError):
            self._run([""], recorder, terminal, on_idle=failing_idle)

        self.assertEqual(terminal.exited, 1)


if __name__ == "__main__":
    unittest.main()
