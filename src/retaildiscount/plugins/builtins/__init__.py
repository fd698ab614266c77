"""Built-in plugins shipped with retaildiscount."""
