"""
Domain Layer

Pure playback rules with no knowledge of Discord, processes or the network:
the track queue, its loop semantics, and the value objects shared by the
session controller.
"""
