"""Audio capture, chunking, transcription and end-of-utterance detection."""
