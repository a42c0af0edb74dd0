import asyncio

import pytest

from lstm_predictor.errors import (
    InputError,
    InsufficientDataError,
    InvalidResponseError,
    MockModeError,
    NoDataError,
    NoModelError,
    NothingToDeleteError,
    OperationInProgressError,
    StorageUnavailableError,
    TrainingError,
)
from lstm_predictor.mock_engine import MockEngine
from lstm_predictor.mode import HandleKind, Mode, ModelHandle
from lstm_predictor.models import LSTMParams

from .conftest import FakeEngine, make_series


async def test_scenario_a_engine_unavailable_trains_in_mock_mode(make_session):
    session = make_session(engine=FakeEngine(fail_init=True), series=make_series(30))
    session.update_params(LSTMParams(lookback=20, epochs=6))

    assert await session.enable_live_engine() is False
    result, mode = await session.train()

    assert mode is Mode.MOCK
    assert len(result.losses) == 6
    assert session.handle.kind is HandleKind.MOCK
    assert session.loss_history == result.losses


async def test_scenario_b_live_training_on_fifteen_closes(make_session):
    session = make_session(series=make_series(15))
    session.update_params(LSTMParams(lookback=20, epochs=3))
    await session.enable_live_engine()

    with pytest.raises(InsufficientDataError):
        await session.train()

    assert session.training is False
    assert session.handle is None


async def test_scenario_c_delete_without_storage(make_session, no_store):
    session = make_session(store_=no_store, series=make_series(30))
    await session.enable_live_engine()
    handle = ModelHandle.trained(object())
    session.handle = handle

    with pytest.raises(StorageUnavailableError):
        await session.delete_persisted_model()

    assert session.handle is handle


async def test_live_training_replaces_handle_and_persists(make_session, store):
    session = make_session(series=make_series(30))
    session.update_params(LSTMParams(lookback=20, epochs=3))
    await session.enable_live_engine()

    result, mode = await session.train()

    assert mode is Mode.LIVE
    assert session.handle is result.handle and session.handle.is_trained
    assert session.persisted_model is True
    assert session.loss_history == [1.0, 0.5, pytest.approx(1 / 3)]
    assert store.path.exists()


async def test_failed_training_keeps_previous_handle(make_session):
    session = make_session(engine=FakeEngine(fail_fit=True), series=make_series(30))
    session.update_params(LSTMParams(lookback=5, epochs=2))
    await session.enable_live_engine()
    previous = ModelHandle.mock()
    session.handle = previous

    with pytest.raises(TrainingError):
        await session.train()

    assert session.handle is previous
    assert session.training is False
    # runtime failures never flip the mode
    assert session.selector.mode is Mode.LIVE


async def test_train_without_data(make_session):
    with pytest.raises(NoDataError):
        await make_session().train()


async def test_overlapping_training_is_rejected(make_session):
    session = make_session(series=make_series(30))
    session.selector.mock_impl = MockEngine(epoch_delay=0.02)
    session.update_params(LSTMParams(epochs=5))

    first = asyncio.create_task(session.train())
    await asyncio.sleep(0.01)
    with pytest.raises(OperationInProgressError):
        await session.train()
    with pytest.raises(OperationInProgressError):
        await session.predict(5)
    await first

    assert session.training is False
    assert len(session.loss_history) == 5


async def test_predict_without_data_is_a_no_op(make_session):
    predictions, _ = await make_session().predict(5)

    assert predictions == []


async def test_mock_predict_sets_predictions(make_session):
    session = make_session(series=make_series(30))

    predictions, mode = await session.predict(5)

    assert mode is Mode.MOCK
    assert session.predictions == predictions and len(predictions) == 5
    assert session.predicting is False


async def test_live_predict_loads_persisted_model(make_session, store):
    session = make_session(series=make_series(30))
    store.save(FakeEngine(), object())
    session.update_params(LSTMParams(lookback=10))
    await session.enable_live_engine()
    session.handle = None

    predictions, mode = await session.predict(3)

    assert mode is Mode.LIVE
    assert len(predictions) == 3
    assert session.handle.is_trained and session.persisted_model is True


async def test_enable_loads_persisted_model(make_session, store):
    store.save(FakeEngine(), object())
    session = make_session()

    assert await session.enable_live_engine() is True

    assert session.handle.is_trained
    assert session.persisted_model is True


async def test_export_requires_a_model(make_session, tmp_path):
    with pytest.raises(NoModelError):
        await make_session().export_model(tmp_path)


async def test_export_refused_in_mock_mode(make_session, tmp_path):
    session = make_session(series=make_series(30))
    await session.train()

    with pytest.raises(MockModeError):
        await session.export_model(tmp_path)


async def test_export_writes_keras_archive(make_session, tmp_path):
    session = make_session(series=make_series(30))
    session.update_params(LSTMParams(lookback=5, epochs=1))
    await session.enable_live_engine()
    await session.train()

    path = await session.export_model(tmp_path / "out")

    assert path.name == "lstm-stock-model.keras"
    assert path.exists()


async def test_import_requires_files(make_session):
    session = make_session()
    await session.enable_live_engine()

    with pytest.raises(InputError, match="No files selected"):
        await session.import_model([])


async def test_import_refused_in_mock_mode(make_session, tmp_path):
    upload = tmp_path / "model.keras"
    upload.write_text("x")

    with pytest.raises(MockModeError):
        await make_session().import_model([upload])


async def test_import_replaces_handle_and_persists(make_session, store, tmp_path):
    session = make_session()
    session.set_mock_mode(False)
    upload = tmp_path / "model.keras"
    upload.write_text("x")

    handle = await session.import_model([upload])

    assert session.handle is handle and handle.is_trained
    assert session.persisted_model is True
    assert store.path.exists()


async def test_import_does_not_switch_routing_to_live(make_session, tmp_path):
    session = make_session(series=make_series(30))
    session.set_mock_mode(False)
    upload = tmp_path / "model.keras"
    upload.write_text("x")

    await session.import_model([upload])

    # only the enable action makes the engine ready
    assert session.selector.engine_ready is False
    assert session.selector.select_predictor() is session.selector.mock_impl
    _, mode = await session.predict(3)
    assert mode is Mode.MOCK


async def test_delete_in_mock_mode_has_nothing_to_delete(make_session):
    with pytest.raises(NothingToDeleteError):
        await make_session().delete_persisted_model()


async def test_delete_removes_persisted_model(make_session, store):
    session = make_session(series=make_series(30))
    session.update_params(LSTMParams(lookback=5, epochs=1))
    await session.enable_live_engine()
    await session.train()

    assert await session.delete_persisted_model() is True

    assert not store.path.exists()
    assert session.handle is None
    assert session.persisted_model is False


async def test_reset_all_restores_defaults_and_deletes_model(make_session, store, prefs):
    session = make_session(series=make_series(30))
    session.set_remember(True)
    await session.fetch("msft", "KEY123")
    session.set_theme("dark")
    session.update_params(LSTMParams(lookback=5, epochs=1))
    await session.enable_live_engine()
    await session.train()

    await session.reset_all()

    assert not store.path.exists()
    assert not prefs.path.exists()
    assert (session.symbol, session.api_key, session.theme) == ("AAPL", "", "light")
    assert session.prefs.prefs.remember_settings is False
    assert session.selector.mode is Mode.MOCK and session.selector.engine_ready is False


async def test_reset_all_swallows_delete_failure(make_session, no_store):
    session = make_session(store_=no_store)
    session.set_theme("dark")

    await session.reset_all()

    assert session.theme == "light"


async def test_fetch_failure_keeps_previous_data(make_session):
    def broken(symbol, key):
        raise InvalidResponseError()

    session = make_session(fetcher=broken, series=make_series(10))
    before = list(session.data)

    with pytest.raises(InvalidResponseError):
        await session.fetch("AAPL", "KEY")

    assert session.data == before
    assert session.loading is False


async def test_fetch_replaces_series_and_clears_forecast(make_session):
    calls = []

    def fetcher(symbol, key):
        calls.append((symbol, key))
        return make_series(12)

    session = make_session(fetcher=fetcher, series=make_series(30))
    await session.predict(3)

    points = await session.fetch(" tsla ", "KEY")

    assert calls == [("TSLA", "KEY")]
    assert len(points) == 12 and session.data == points
    assert session.predictions == []
    assert session.symbol == "TSLA"


async def test_startup_auto_fetches_remembered_symbol(make_session, prefs):
    prefs.set_remember(True)
    prefs.update(symbol="IBM", api_key="KEY")
    calls = []
    session = make_session(fetcher=lambda s, k: calls.append(s) or make_series(25))

    await session.startup()

    assert calls == ["IBM"]
    assert len(session.data) == 25


async def test_startup_ignores_failed_auto_fetch(make_session, prefs):
    prefs.set_remember(True)
    prefs.update(symbol="IBM", api_key="BAD")

    def broken(symbol, key):
        raise InvalidResponseError()

    session = make_session(fetcher=broken)

    await session.startup()

    assert session.data == []


def test_chart_data_tags_history_and_predictions(make_session):
    session = make_session(series=make_series(3))
    session.predictions = make_series(2, start=session.data[-1].date)

    chart = session.chart_data()

    assert [c.type for c in chart] == ["history"] * 3 + ["prediction"] * 2
