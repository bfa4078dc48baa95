"""Core primitives: settings, database, roles, secret hashing and tokens."""

# passlib reads bcrypt.__about__.__version__, which bcrypt 4.x no longer ships.
# Must run before app.core.security builds its CryptContext.
import bcrypt

if not hasattr(bcrypt, "__about__"):
    class _About:
        __version__ = bcrypt.__version__

    bcrypt.__about__ = _About()
