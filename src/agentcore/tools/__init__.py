"""Built-in tools and the registry that dispatches them."""
