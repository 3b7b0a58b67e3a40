"""yieldbook: property listings with price, location and rental yield.

Provides the record models, the query engine (filter, sort, paginate) and
the interchangeable durable/volatile stores used by the HTTP service.
"""

__version__ = "1.0.0"
