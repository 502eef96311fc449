"""
Batch audio transcription pipeline.

This package converts an audio file to a canonical 16 kHz mono waveform,
optionally splits it on sustained silence, runs each piece through a
pluggable speech recogniser and writes a plain-text report plus a JSON
record of the run.
"""

__version__ = "0.1.0"
