"""External collaborators: tools, archives, property lists and downloads."""
