"""
Tests for the validated state machine.
"""

from enum import Enum, auto
import unittest

from firesim.state import Action, StateMachine


class Light(Enum):
    RED = auto()
    GREEN = auto()
    YELLOW = auto()
    BROKEN = auto()


class TestStateMachine(unittest.TestCase):
    """Test StateMachine class."""

    def setUp(self):
        self.effects = []
        self.machine = StateMachine(
            Light.RED,
            {
                Light.RED: [Action(Light.GREEN, self.effects.append)],
                Light.GREEN: [Action(Light.YELLOW), Action(Light.BROKEN)],
                Light.YELLOW: [Action(Light.RED, lambda: self.machine.current)],
            },
        )

    def test_legal_transition(self):
        """Test a legal transition switches state and runs the effect."""
        self.machine.request_transition(Light.GREEN, "go")
        self.assertIs(self.machine.current, Light.GREEN)
        self.assertEqual(self.effects, ["go"])

    def test_effect_sees_new_state(self):
        """Test the effect runs after the state has switched."""
        self.machine.request_transition(Light.GREEN, "go")
        self.machine.request_transition(Light.YELLOW)
        self.assertIs(self.machine.request_transition(Light.RED), Light.RED)

    def test_illegal_transition(self):
        """Test transitions outside the graph raise and leave the state alone."""
        with self.assertRaises(ValueError):
            self.machine.request_transition(Light.YELLOW)
        self.assertIs(self.machine.current, Light.RED)

    def test_terminal_state(self):
        """Test a state absent from the graph has no way out."""
        self.machine.request_transition(Light.GREEN, "go")
        self.machine.request_transition(Light.BROKEN)
        self.assertFalse(self.machine.can_transition(Light.RED))
        with self.assertRaises(ValueError):
            self.machine.request_transition(Light.RED)

    def test_history_and_state_list(self):
        """Test history and the list of states."""
        self.machine.request_transition(Light.GREEN, "go")
        self.assertEqual(self.machine.history, [Light.RED, Light.GREEN])
        self.assertEqual(self.machine.get_state_list(), list(Light))


if __name__ == '__main__':
    unittest.main()
