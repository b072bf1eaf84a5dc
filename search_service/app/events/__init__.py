"""
Search Service event consumption: broker clients, wire schemas and the
product event consumer (``event_consumers.ProductEventConsumer``).
"""
