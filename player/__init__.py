"""Preview player: playback controller, audio ports, proxy client and CLI."""
