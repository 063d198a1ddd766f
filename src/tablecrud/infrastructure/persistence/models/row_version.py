"""SQLAlchemy model for the row_version table."""

from sqlalchemy import BigInteger, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tablecrud.infrastructure.persistence.database import Base


class RowVersionModel(Base):
    """Current version number of an audited row.

    ``version`` is the mapper's version counter with application-assigned
    values, so every UPDATE is conditional on the version previously read
    and a concurrent increment raises ``StaleDataError`` on flush.
    """

    __tablename__ = "row_version"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    table_name: Mapped[str] = mapped_column(String(255), nullable=False)
    row_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("table_name", "row_id", name="uq_row_version_table_row"),
    )

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }

    def __repr__(self) -> str:
        return (
            f"<RowVersion(table={self.table_name}, row={self.row_id}, "
            f"version={self.version})>"
        )
