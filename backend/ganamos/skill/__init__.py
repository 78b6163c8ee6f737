"""Voice Skill — Alexa request handlers that talk to the Ganamos API."""
