"""plugin-updater: keeps server plugin jars up to date from their release sources."""
