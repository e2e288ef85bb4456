"""Pure domain rules with no persistence side effects."""
