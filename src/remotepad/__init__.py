"""remotepad -- Drive a host's pointer and keyboard from a handheld device.

The host issues an encrypted pairing code (address, port and
secret). A client that decodes it opens an authenticated event stream, and
the host turns the stream of raw pointer and key events into a small,
normalized command vocabulary that an input actuator replays as OS actions.
"""

__version__ = "0.1.0"
