from sqlalchemy import Column, Integer, String, Text
from medorder.db.base import Base


class Account(Base):
    """A registered shopkeeper. Provisioned by the admin, read-only to the bot."""
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    display_name = Column(String(255), nullable=False)
    telegram_id = Column(String(64), unique=True, nullable=False, index=True)
    address = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Account id={self.id} telegram_id={self.telegram_id}>"
