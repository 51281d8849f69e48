"""
serverpulse - Minecraft server status bot for Discord

Polls a Minecraft server, tracks recently seen players and keeps a single
Discord status message in sync with the latest observation.
"""

__version__ = "0.1.0"
