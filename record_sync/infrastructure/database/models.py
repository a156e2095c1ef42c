"""
Modelos de base de datos (ORM).
"""
from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from record_sync.infrastructure.database.session import Base


class TableRowModel(Base):
    """
    Una fila de una tabla del flujo (forecast, upcoming, ...).

    Las celdas se guardan como lista JSON; los tipos que JSON no soporta
    (fechas, Decimal) se codifican en `sql_table.encode_cell`.
    """

    __tablename__ = "table_rows"
    __table_args__ = (UniqueConstraint("table_name", "row_index", name="uq_table_rows_table_row"),)

    id = Column(Integer, primary_key=True, index=True)
    table_name = Column(String(255), nullable=False, index=True)
    row_index = Column(Integer, nullable=False)
    cells = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<TableRow(table={self.table_name}, row={self.row_index})>"
