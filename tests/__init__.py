"""Test package for Arithmetic Defense.

Core tests drive the deterministic engine with a fake clock and seeded RNG.
The UI smoke tests run headlessly using pygame's dummy video driver to avoid
opening real windows.  To run these tests, execute ``pytest`` from the
project root.
"""
