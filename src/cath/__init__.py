"""cath: show files in the terminal with syntax highlighting."""
