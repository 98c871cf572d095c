"""All CREATE INDEX statements for the initial schema."""

ALL = [
    # artworks
    "CREATE INDEX ix_artworks_user_id ON artworks(user_id, created_at DESC);",
    "CREATE INDEX ix_artworks_listed ON artworks(is_listed_for_sale, created_at) "
    "WHERE is_listed_for_sale = TRUE;",
    "CREATE INDEX ix_artworks_created_at ON artworks(created_at DESC);",
    # ledger_records
    "CREATE INDEX ix_ledger_records_artwork_id ON ledger_records(artwork_id);",
    # artwork_purchases
    "CREATE INDEX ix_artwork_purchases_buyer_id ON artwork_purchases(buyer_id);",
    "CREATE INDEX ix_artwork_purchases_artwork_id ON artwork_purchases(artwork_id);",
    "CREATE INDEX ix_artwork_purchases_date ON artwork_purchases(purchase_date DESC);",
]
