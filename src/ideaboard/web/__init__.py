"""HTTP service exposing the board engine."""
