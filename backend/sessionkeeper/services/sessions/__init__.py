"""Session lifecycle: PENDING -> ACTIVE -> ENDED, rewards and the note log."""
