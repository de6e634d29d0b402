import unittest

from scanner.services.scan_state_machine import InvalidTransition, ScanState, ScanStateMachine


class ScanStateMachineTests(unittest.TestCase):
    def test_full_session_cycle(self):
        sm = ScanStateMachine()
        self.assertEqual(sm.state, ScanState.IDLE)
        self.assertEqual(sm.request_start(), ScanState.STARTING)
        self.assertEqual(sm.mark_scanning(), ScanState.SCANNING)
        self.assertEqual(sm.request_stop(), ScanState.STOPPING)
        self.assertEqual(sm.mark_idle(), ScanState.IDLE)

    def test_switch_goes_back_through_starting(self):
        sm = ScanStateMachine()
        sm.request_start()
        sm.mark_scanning()
        self.assertEqual(sm.request_switch(), ScanState.STARTING)
        self.assertEqual(sm.mark_scanning(), ScanState.SCANNING)

    def test_error_allows_restart(self):
        sm = ScanStateMachine()
        sm.request_start()
        self.assertEqual(sm.mark_failed(), ScanState.ERROR)
        self.assertEqual(sm.request_start(), ScanState.STARTING)

    def test_invalid_transitions_raise_and_keep_state(self):
        sm = ScanStateMachine()
        with self.assertRaises(InvalidTransition):
            sm.request_stop()
        with self.assertRaises(InvalidTransition):
            sm.mark_scanning()
        sm.request_start()
        with self.assertRaises(InvalidTransition):
            sm.request_start()
        self.assertEqual(sm.state, ScanState.STARTING)

    def test_force_idle_from_any_state(self):
        sm = ScanStateMachine()
        sm.request_start()
        sm.mark_failed()
        self.assertEqual(sm.force_idle(), ScanState.IDLE)

    def test_state_values_match_display_names(self):
        self.assertEqual(
            [state.value for state in ScanState],
            ["Idle", "Starting", "Scanning", "Stopping", "Error"],
        )


if __name__ == "__main__":
    unittest.main()
