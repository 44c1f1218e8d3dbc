"""Asset resolution and the local binary cache."""
