from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import StubCalendar, StubChartPrimitive
from main import app
from routers import get_ziwei_service
from service import ZiweiService

CHART_REQUEST = {
    'birth_date': '1990-05-15',
    'date_type': 'solar',
    'birth_time': '08:30',
    'gender': 'male',
    'birth_place': '北京',
    'as_of': '2026-08-27T10:00:00',
}


def _use_primitive(primitive: StubChartPrimitive) -> None:
    service = ZiweiService(calendar=StubCalendar(), chart_primitive=primitive)
    app.dependency_overrides[get_ziwei_service] = lambda: service


@pytest.fixture
def client():
    _use_primitive(StubChartPrimitive())
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root_and_health(client) -> None:
    assert client.get('/').json()['message'] == 'Ziwei Doushu API'
    assert client.get('/health').json() == {'status': 'ok'}


def test_calculate_chart(client) -> None:
    response = client.post('/api/v1/ziwei/calculate', json=CHART_REQUEST)

    assert response.status_code == 200
    data = response.json()
    assert data['zodiac'] == '马'
    assert data['gender'] == 'male'
    assert len(data['palaces']) == 12
    assert data['palaces'][0]['earthly_branch'] == '寅'
    assert data['luck_periods']['current_major']['palace'] == '子女宫'
    assert data['luck_periods']['annual']['label'] == '流年 丙午'
    assert data['stars_info']['key_stars_location']['天马'] == '官禄宫'
    assert data['transformations']['palaces']['迁移宫'] == [{'star': '廉贞', 'type': 'huaxing'}]


def test_batch_allows_partial_failure(client) -> None:
    bad = {**CHART_REQUEST, 'birth_date': '1990-02-30', 'id': 'bad'}
    response = client.post('/api/v1/ziwei/calculate/batch',
                           json={'charts': [CHART_REQUEST, bad]})

    assert response.status_code == 200
    data = response.json()
    assert data['summary'] == {'total': 2, 'successful': 1, 'failed': 1}
    assert data['results'][0]['id'] == 'chart_0'
    assert data['results'][0]['success'] is True
    assert data['results'][1]['id'] == 'bad'
    assert data['results'][1]['error']['type'] == 'InvalidDateError'


@pytest.mark.parametrize("birth_time, unit", [('25:00', 'hour'), ('12:60', 'minute')])
def test_birth_time_out_of_range(client, birth_time: str, unit: str) -> None:
    response = client.post('/api/v1/ziwei/calculate',
                           json={**CHART_REQUEST, 'birth_time': birth_time})

    assert response.status_code == 422
    body = response.json()
    assert body['error'] == 'ValidationError'
    errors = [error for error in body['detail'] if 'birth_time' in error['loc']]
    assert errors
    assert f"birth_time {unit} must be between" in errors[0]['msg']


def test_invalid_date_maps_to_422(client) -> None:
    response = client.post('/api/v1/ziwei/calculate',
                           json={**CHART_REQUEST, 'birth_date': '1990-02-30'})

    assert response.status_code == 422
    assert response.json()['error'] == 'InvalidDateError'


def test_primitive_failure_maps_to_500(client) -> None:
    _use_primitive(StubChartPrimitive(fail=True))

    response = client.post('/api/v1/ziwei/calculate', json=CHART_REQUEST)

    assert response.status_code == 500
    body = response.json()
    assert body['error'] == 'ChartPrimitiveError'
    assert 'chart primitive failed' in body['message']


def test_triple_square(client) -> None:
    response = client.post('/api/v1/ziwei/triple-square-palaces', json={'palace_name': '命宫'})

    assert response.status_code == 200
    assert response.json() == {
        'original_palace': '命宫',
        'triple_palaces': ['财帛宫', '官禄宫'],
        'square_palaces': ['迁移宫'],
        'all_related_palaces': ['命宫', '财帛宫', '官禄宫', '迁移宫'],
    }


def test_triple_square_unknown_palace(client) -> None:
    response = client.post('/api/v1/ziwei/triple-square-palaces', json={'palace_name': '天宫'})

    assert response.status_code == 422
    assert response.json()['error'] == 'InvalidPalaceError'


def test_check_transformation(client) -> None:
    response = client.post('/api/v1/ziwei/check-transformation', json={
        'chart': CHART_REQUEST,
        'palace_name': '命宫',
        'transformation_type': 'huake',
    })

    assert response.status_code == 200
    assert response.json() == {
        'exists': True,
        'details': [{'palace': '财帛宫', 'star': '武曲', 'transformation': '化科'}],
    }


def test_config_palaces(client) -> None:
    palaces = client.get('/api/v1/config/palaces').json()['palaces']

    assert [p['position'] for p in palaces] == list(range(1, 13))
    assert palaces[0]['name'] == '命宫'
    assert palaces[0]['direction'] == '正北'
    assert palaces[0]['square_palaces'] == ['迁移宫']


def test_config_transformations(client) -> None:
    stems = client.get('/api/v1/config/transformations').json()['stems']

    assert len(stems) == 10
    assert stems['甲'][0] == {'star': '破军', 'type': 'huaquan'}
    assert [t['type'] for t in stems['癸']] == ['huaquan', 'huake', 'huaxing', 'huaji']


def test_almanac_rejects_malformed_date(client) -> None:
    response = client.post('/api/v1/almanac/daily', json={'date': '2024/02/10'})

    assert response.status_code == 422


def test_almanac_invalid_day_maps_to_422(client) -> None:
    response = client.get('/api/v1/almanac/suitable-avoid', params={'date': '2024-02-30'})

    assert response.status_code == 422
    assert response.json()['error'] == 'InvalidDateError'
