"""CREATE TABLE statements for artworks, ledger records, and purchases."""

ARTWORKS = """
CREATE TABLE artworks (
    id                  SERIAL PRIMARY KEY,
    user_id             INTEGER NOT NULL REFERENCES users(id),
    file_name           VARCHAR(255) NOT NULL,
    file_type           VARCHAR(100) NOT NULL,
    file_size           BIGINT NOT NULL,
    content_hash        VARCHAR(64) NOT NULL
                        CONSTRAINT uq_artworks_content_hash UNIQUE,
    perceptual_hash     VARCHAR(100),
    image_path          VARCHAR(500),
    created_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
    is_listed_for_sale  BOOLEAN NOT NULL DEFAULT FALSE,
    sale_price          NUMERIC(18, 8),
    CONSTRAINT ck_artworks_listing_price CHECK (
        (is_listed_for_sale = FALSE AND sale_price IS NULL)
        OR (is_listed_for_sale = TRUE AND sale_price > 0)
    )
);
"""

LEDGER_RECORDS = """
CREATE TABLE ledger_records (
    id                  SERIAL PRIMARY KEY,
    artwork_id          INTEGER NOT NULL REFERENCES artworks(id),
    transaction_id      VARCHAR(100) NOT NULL
                        CONSTRAINT uq_ledger_records_transaction_id UNIQUE,
    consensus_timestamp TIMESTAMPTZ NOT NULL,
    memo                VARCHAR(1024),
    node_status         VARCHAR(50) NOT NULL DEFAULT 'SUCCESS',
    recorded_at         TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

ARTWORK_PURCHASES = """
CREATE TABLE artwork_purchases (
    id              SERIAL PRIMARY KEY,
    artwork_id      INTEGER NOT NULL REFERENCES artworks(id),
    buyer_id        INTEGER NOT NULL REFERENCES users(id),
    purchase_price  NUMERIC(18, 8) NOT NULL
                    CONSTRAINT ck_purchase_price_positive CHECK (purchase_price > 0),
    purchase_date   TIMESTAMPTZ NOT NULL DEFAULT now(),
    transaction_id  VARCHAR(100),
    CONSTRAINT uq_artwork_purchases_buyer_artwork UNIQUE (buyer_id, artwork_id)
);
"""

ALL = [ARTWORKS, LEDGER_RECORDS, ARTWORK_PURCHASES]
