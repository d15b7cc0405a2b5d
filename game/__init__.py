"""Super Tic-Tac-Toe game core: rules engine and computer opponent."""
