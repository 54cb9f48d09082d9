"""Classification, aggregation and scheduling of sentiment cycles."""
