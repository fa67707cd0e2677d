"""SmartLock: keypad lock simulator with VHDL generation."""

__version__ = "1.0.0"
