"""Authentication glue: password hashing, bearer tokens, role guards."""
