"""Transcript Filer - phonetic correction and routing for voice transcripts.

Two coupled decisions over a raw speech-to-text transcript:
1. Correction: apply tiered "sounds-like" substitutions drawn from known entities
2. Routing: classify the transcript into one configured destination
"""

__version__ = "0.1.0"
