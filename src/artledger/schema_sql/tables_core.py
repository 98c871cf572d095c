"""CREATE TABLE statements for user accounts."""

USERS = """
CREATE TABLE users (
    id              SERIAL PRIMARY KEY,
    username        VARCHAR(100) NOT NULL UNIQUE,
    email           VARCHAR(200) NOT NULL UNIQUE,
    password_hash   VARCHAR(255) NOT NULL,
    role            VARCHAR(20)  NOT NULL DEFAULT 'Buyer'
                    CONSTRAINT ck_users_role CHECK (role IN ('Seller','Buyer')),
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

ALL = [USERS]
