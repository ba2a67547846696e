"""Audio infrastructure - PyAV decoder and sounddevice output.

Adapters are imported from their modules directly; ``sounddevice`` loads
PortAudio at import time, so nothing is re-exported here.
"""
