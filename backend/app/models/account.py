from sqlalchemy import Column, Integer, String
from app.core.database import Base


class Account(Base):
    """
    Account model representing application users.

    Names are stored upper-cased and email lower-cased by the account service.
    Passwords are stored as bcrypt hashes (never plaintext).
    The photo itself lives on disk; only its generated filename is stored here.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    # Role classifier - assigned by the server, never by the client
    auth_id = Column(Integer, nullable=False)
    # Unique index catches concurrent creates that both pass the pre-check
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    middle_name = Column(String, nullable=False)
    password = Column(String, nullable=False)
    photo_file_name = Column(String, nullable=False)
    # Opaque token generated at creation for a future password-reset flow
    reset_token = Column(String, nullable=True)
