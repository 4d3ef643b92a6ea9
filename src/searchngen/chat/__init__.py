"""Chat session, conversation memory and the panel message protocol."""
