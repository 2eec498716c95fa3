"""
Entity repositories.

Each module owns the row shape of one entity in the single table and
converts rows to and from the API models. Functions take the KeyedStore as
their first argument.
"""
