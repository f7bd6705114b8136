"""Qt table model exposing the shipment request rows."""

from __future__ import annotations

from enum import Enum
from typing import Any

from PySide6.QtCore import QAbstractTableModel, QModelIndex, QObject, Qt

from ....config import DERIVED_FIELDS, TABLE_COLUMNS
from ....errors import ShipDeskError
from ...viewmodels.shipment_table_viewmodel import ShipmentTableViewModel


class ShipmentTableRole(int, Enum):
    """Custom roles exposed by :class:`ShipmentTableModel`."""

    RECORD_ID = Qt.ItemDataRole.UserRole + 1
    RECORD_LINK = Qt.ItemDataRole.UserRole + 2
    FIELD_NAME = Qt.ItemDataRole.UserRole + 3
    HAS_DRAFT = Qt.ItemDataRole.UserRole + 4


class ShipmentTableModel(QAbstractTableModel):
    """Read-mostly table over :class:`ShipmentTableViewModel`.

    Every row-set replacement resets the model; edits are staged as drafts on
    the view-model and only reach the server through ``save()``.
    """

    def __init__(
        self,
        viewmodel: ShipmentTableViewModel,
        columns: tuple[tuple[str, str], ...] = TABLE_COLUMNS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._vm = viewmodel
        self._columns = columns
        self._rows = tuple(viewmodel.rows.value)
        self._vm.rows_updated.connect(self._on_rows_updated)
        self._vm.drafts_changed.connect(self._on_drafts_changed)

    # ------------------------------------------------------------------
    # QAbstractTableModel API
    # ------------------------------------------------------------------
    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802
        if parent.isValid():
            return 0
        return len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802
        if parent.isValid():
            return 0
        return len(self._columns)

    def headerData(  # noqa: N802
        self,
        section: int,
        orientation: Qt.Orientation,
        role: int = Qt.ItemDataRole.DisplayRole,
    ):
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal and 0 <= section < len(self._columns):
            return self._columns[section][0]
        if orientation == Qt.Orientation.Vertical:
            return section + 1
        return None

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):  # noqa: N802
        if not index.isValid() or not 0 <= index.row() < len(self._rows):
            return None
        row = self._rows[index.row()]
        field_name = self._columns[index.column()][1]
        if role in (Qt.ItemDataRole.DisplayRole, Qt.ItemDataRole.EditRole):
            value = self._vm.display_value(row, field_name)
            if role == Qt.ItemDataRole.DisplayRole:
                return "" if value is None else str(value)
            return value
        if role == ShipmentTableRole.RECORD_ID:
            return row.id
        if role == ShipmentTableRole.RECORD_LINK:
            return row.record_link
        if role == ShipmentTableRole.FIELD_NAME:
            return field_name
        if role == ShipmentTableRole.HAS_DRAFT:
            return self._vm.pending.has_draft(row.id, field_name)
        return None

    def flags(self, index: QModelIndex) -> Qt.ItemFlag:
        if not index.isValid():
            return Qt.ItemFlag.NoItemFlags
        flags = Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable
        if self._columns[index.column()][1] not in DERIVED_FIELDS:
            flags |= Qt.ItemFlag.ItemIsEditable
        return flags

    def setData(  # noqa: N802
        self,
        index: QModelIndex,
        value: Any,
        role: int = Qt.ItemDataRole.EditRole,
    ) -> bool:
        if role != Qt.ItemDataRole.EditRole or not index.isValid():
            return False
        row = self._rows[index.row()]
        field_name = self._columns[index.column()][1]
        try:
            self._vm.stage_edit(row.id, field_name, value)
        except ShipDeskError:
            return False
        self.dataChanged.emit(index, index, [Qt.ItemDataRole.DisplayRole, Qt.ItemDataRole.EditRole])
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def record_id_at(self, row: int) -> str | None:
        if 0 <= row < len(self._rows):
            return self._rows[row].id
        return None

    def _on_rows_updated(self, rows) -> None:
        self.beginResetModel()
        self._rows = tuple(rows)
        self.endResetModel()

    def _on_drafts_changed(self, _count: int) -> None:
        if not self._rows:
            return
        top_left = self.index(0, 0)
        bottom_right = self.index(len(self._rows) - 1, len(self._columns) - 1)
        self.dataChanged.emit(top_left, bottom_right)
