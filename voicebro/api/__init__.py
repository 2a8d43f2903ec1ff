"""HTTP and WebSocket surface of VoiceBro."""
