"""Application framework pieces shared by every stage (logging)."""
