"""Search Service: read side of the product catalog, fed by catalog events."""
