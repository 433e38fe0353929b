"""OmniScope meeting-intelligence backend."""
