import secrets

# Generate a secure random secret for signing Flask sessions
session_secret = secrets.token_hex(32)

print(f"SESSION_SECRET={session_secret}")
