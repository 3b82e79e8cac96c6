"""Action validation for the session state machine.

Validators only inspect state and raise; they never mutate it.
"""
