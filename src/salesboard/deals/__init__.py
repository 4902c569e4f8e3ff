"""Deal management -- schemas, persistence, remote stores and lifecycle actions.

Provides pydantic schemas (Deal, DealCreate, DealLoss, SaleCreate), SQLAlchemy
models and DealRepository for the self-hosted backend, the DealStore
interface with Supabase and Postgres implementations, DealService for
explicit user actions, and WonDealSaleSync for won-deal sale recording.
"""
