"""SQLAlchemy-backed repository implementations.

Every helper takes an ``AsyncSession`` and the caller's ``business_id`` (or
the :class:`~waterledger.app.auth.Caller` itself) and never reaches outside
that business. Write helpers commit their own transaction.
"""
