"""HTTP relay for terminal snapshot pushes and dashboard polls."""
