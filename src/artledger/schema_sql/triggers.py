"""Trigger functions and trigger DDL for the initial schema."""

# ---- Trigger functions ----

FN_RAISE_IMMUTABLE = """
CREATE OR REPLACE FUNCTION raise_immutable_error()
RETURNS TRIGGER AS $$
BEGIN
    RAISE EXCEPTION 'Rows in table % are immutable', TG_TABLE_NAME;
END;
$$ LANGUAGE plpgsql;
"""

FN_CHECK_IMMUTABLE_ARTWORK = """
CREATE OR REPLACE FUNCTION check_immutable_artwork_fields()
RETURNS TRIGGER AS $$
BEGIN
    IF OLD.content_hash IS DISTINCT FROM NEW.content_hash
    OR OLD.user_id      IS DISTINCT FROM NEW.user_id
    OR OLD.file_size    IS DISTINCT FROM NEW.file_size
    THEN
        RAISE EXCEPTION 'Cannot modify registered artwork fields';
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

FUNCTIONS_ALL = [FN_RAISE_IMMUTABLE, FN_CHECK_IMMUTABLE_ARTWORK]

# ---- Triggers ----

TRG_LEDGER_RECORDS_IMMUTABLE = """
CREATE TRIGGER trg_ledger_records_immutable
BEFORE UPDATE OR DELETE ON ledger_records
FOR EACH ROW EXECUTE FUNCTION raise_immutable_error();
"""

TRG_ARTWORK_PURCHASES_IMMUTABLE = """
CREATE TRIGGER trg_artwork_purchases_immutable
BEFORE UPDATE ON artwork_purchases
FOR EACH ROW EXECUTE FUNCTION raise_immutable_error();
"""

TRG_ARTWORK_IMMUTABLE_FIELDS = """
CREATE TRIGGER trg_artwork_immutable_fields
BEFORE UPDATE ON artworks
FOR EACH ROW EXECUTE FUNCTION check_immutable_artwork_fields();
"""

TRIGGERS_ALL = [
    TRG_LEDGER_RECORDS_IMMUTABLE,
    TRG_ARTWORK_PURCHASES_IMMUTABLE,
    TRG_ARTWORK_IMMUTABLE_FIELDS,
]
