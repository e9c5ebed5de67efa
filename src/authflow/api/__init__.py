"""HTTP surfaces: the mock OAuth provider and the loopback callback relay."""
