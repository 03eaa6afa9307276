"""Show what cmus is playing as Discord Rich Presence."""
