"""
Application Layer

Orchestrates domain objects and infrastructure adapters into the player.

Structure:
- commands/: Command objects accepted by the controller and their results
- queries/: Read models (player snapshot)
- services/: The playback controller and the scrobble tracker
- interfaces/: Port interfaces for decoder, output device and scrobbler adapters
"""
