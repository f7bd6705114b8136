import asyncio
import os

import pytest

pytest.importorskip("PySide6", reason="PySide6 is required for table model tests", exc_type=ImportError)
pytest.importorskip("PySide6.QtWidgets", reason="Qt widgets not available", exc_type=ImportError)

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QApplication

from shipdesk.appctx import create_headless_context
from shipdesk.gui.ui.models.shipment_table_model import ShipmentTableModel, ShipmentTableRole
from shipdesk.settings import SettingsManager

ID1 = "a01000000000000001"
ID3 = "a01000000000000003"


@pytest.fixture(scope="module")
def qapp() -> QApplication:
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def context(records, tmp_path):
    settings = SettingsManager(tmp_path / "settings.json")
    settings.load(write_defaults=False)
    context = create_headless_context(records, settings=settings)
    asyncio.run(context.viewmodel.attach())
    return context


def test_shape_and_headers(qapp, context):
    model = ShipmentTableModel(context.viewmodel)

    assert model.rowCount() == 3
    assert model.columnCount() == 5
    labels = [model.headerData(c, Qt.Orientation.Horizontal) for c in range(5)]
    assert labels == ["Name", "Status", "Destination", "Estimated Delivery", "Assigned Agent"]
    assert model.headerData(0, Qt.Orientation.Vertical) == 1


def test_display_and_custom_roles(qapp, context):
    model = ShipmentTableModel(context.viewmodel)

    status = model.index(0, 1)
    agent_missing = model.index(2, 4)

    assert model.data(status) == "Assigned to Agent"
    assert model.data(status, ShipmentTableRole.RECORD_ID) == ID1
    assert model.data(status, ShipmentTableRole.RECORD_LINK) == f"/{ID1}"
    assert model.data(status, ShipmentTableRole.FIELD_NAME) == "Status__c"
    assert model.data(agent_missing) == ""
    assert model.data(agent_missing, Qt.ItemDataRole.EditRole) is None
    assert model.record_id_at(2) == ID3
    assert model.record_id_at(9) is None


def test_derived_columns_are_not_editable(qapp, context):
    model = ShipmentTableModel(context.viewmodel)

    assert model.flags(model.index(0, 2)) & Qt.ItemFlag.ItemIsEditable
    assert not model.flags(model.index(0, 4)) & Qt.ItemFlag.ItemIsEditable


def test_set_data_stages_a_draft(qapp, context):
    model = ShipmentTableModel(context.viewmodel)
    destination = model.index(0, 2)

    assert model.setData(destination, "Geneva") is True

    assert model.data(destination) == "Geneva"
    assert model.data(destination, ShipmentTableRole.HAS_DRAFT) is True
    assert context.viewmodel.pending.value_for(ID1, "Destination__c") == "Geneva"
    assert context.viewmodel.find_row(ID1).get("Destination__c") == "Lyon"


def test_set_data_on_derived_column_is_refused(qapp, context):
    model = ShipmentTableModel(context.viewmodel)

    assert model.setData(model.index(0, 4), "Someone") is False
    assert not context.viewmodel.pending


def test_model_resets_when_rows_are_replaced(qapp, context):
    model = ShipmentTableModel(context.viewmodel)
    resets = []
    model.modelReset.connect(lambda: resets.append(True))

    async def scenario():
        await context.fetch_service.delete(ID3)
        await context.controller.wait_idle()

    asyncio.run(scenario())

    assert resets == [True]
    assert model.rowCount() == 2
