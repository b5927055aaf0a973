from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
import requests
from web3 import Web3

from conftest import ts
from revenue_attribution.errors import ResolutionError, UpstreamUnavailable
from revenue_attribution.models.attribution import PositionRecord, TimeSample
from revenue_attribution.models.networks import NetworkId
from revenue_attribution.services.beefy import (
    BeefyAPI,
    format_timestamp,
    parse_timestamp,
    split_time_range,
    vault_address_from_product_key,
)

VAULT = '0x' + 'ab' * 20


def json_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def api():
    return BeefyAPI('https://vaults.example/api/', timeout=5, retries=1)


def test_timestamp_helpers():
    assert parse_timestamp('1970-01-01T00:01:40.000Z') == ts(100)
    assert parse_timestamp('1970-01-01T00:01:40') == ts(100)
    assert format_timestamp(ts(100)) == '1970-01-01T00:01:40.000Z'


def test_split_time_range_covers_range_in_order():
    sections = split_time_range(ts(0), ts(25), timedelta(seconds=10))
    assert sections == [(ts(0), ts(10)), (ts(10), ts(20)), (ts(20), ts(25))]
    assert split_time_range(ts(5), ts(5), timedelta(seconds=10)) == []


def test_vault_address_from_product_key():
    assert vault_address_from_product_key(f'beefy:vault:arbitrum:{VAULT}') == Web3.to_checksum_address(VAULT)


def test_fetch_position_history_parses_timeline(api):
    timeline = [
        {'datetime': '1970-01-01T00:01:40.000Z', 'product_key': f'beefy:vault:arbitrum:{VAULT}',
         'chain': 'arbitrum', 'usd_balance': 12.5},
        {'datetime': '1970-01-01T00:03:20.000Z', 'product_key': f'beefy:vault:arbitrum:{VAULT}',
         'chain': 'arbitrum', 'usd_balance': None},
        {'datetime': '1970-01-01T00:05:00.000Z', 'product_key': f'beefy:vault:base:{VAULT}',
         'chain': 'base', 'usd_balance': 0},
    ]
    with patch('revenue_attribution.services.http.requests.get', return_value=json_response(timeline)) as mock_get:
        records = api.fetch_position_history('0xUser')

    mock_get.assert_called_once_with(
        'https://vaults.example/api/timeline', params={'address': '0xUser'}, timeout=5
    )
    checksum = Web3.to_checksum_address(VAULT)
    assert records == [
        PositionRecord(timestamp=ts(100), vault_id=checksum, network_id=NetworkId.ARBITRUM, position_value=12.5),
        PositionRecord(timestamp=ts(300), vault_id=checksum, network_id=NetworkId.BASE, position_value=0),
    ]


def test_unknown_chain_is_a_resolution_error(api):
    timeline = [{'datetime': '1970-01-01T00:01:40Z', 'product_key': f'beefy:vault:fantom:{VAULT}',
                 'chain': 'fantom', 'usd_balance': 1}]
    with patch('revenue_attribution.services.http.requests.get', return_value=json_response(timeline)):
        with pytest.raises(ResolutionError):
            api.fetch_position_history('0xUser')


def test_unexpected_timeline_shape(api):
    with patch('revenue_attribution.services.http.requests.get', return_value=json_response({'error': 'nope'})):
        with pytest.raises(UpstreamUnavailable):
            api.get_timeline('0xUser')


def test_tvl_history_is_fetched_in_weekly_sections():
    api = BeefyAPI('https://vaults.example/api', retries=1, tvl_span_days=7)
    start = ts(0)
    end = start + timedelta(days=10)
    responses = [
        json_response([['1970-01-01T00:00:00.000Z', 100], ['1970-01-04T00:00:00.000Z', 110]]),
        json_response([['1970-01-09T00:00:00.000Z', 120]]),
    ]
    with patch('revenue_attribution.services.http.requests.get', side_effect=responses) as mock_get:
        samples = api.fetch_pool_value_history(VAULT, NetworkId.OPTIMISM, start, end)

    assert [call.args[0] for call in mock_get.call_args_list] == [
        f'https://vaults.example/api/product/optimism/{VAULT}/tvl'
    ] * 2
    assert [call.kwargs['params'] for call in mock_get.call_args_list] == [
        {'from_date_utc': '1970-01-01T00:00:00.000Z', 'to_date_utc': '1970-01-08T00:00:00.000Z'},
        {'from_date_utc': '1970-01-08T00:00:00.000Z', 'to_date_utc': '1970-01-11T00:00:00.000Z'},
    ]
    assert samples == [
        TimeSample(timestamp=ts(0), value=100),
        TimeSample(timestamp=ts(3 * 86400), value=110),
        TimeSample(timestamp=ts(8 * 86400), value=120),
    ]


def test_tvl_history_for_unmapped_network(api):
    with patch('revenue_attribution.services.http.requests.get') as mock_get:
        with pytest.raises(ResolutionError):
            api.fetch_pool_value_history(VAULT, NetworkId.CELO, ts(0), ts(10))
    mock_get.assert_not_called()


def test_error_status_is_upstream_unavailable(api):
    with patch('revenue_attribution.services.http.requests.get', return_value=json_response(None, 503)):
        with pytest.raises(UpstreamUnavailable):
            api.fetch_position_history('0xUser')


def test_failed_requests_are_retried():
    api = BeefyAPI('https://vaults.example/api', retries=3)
    responses = [requests.ConnectionError("reset"), json_response(None, 502), json_response([])]
    with patch('revenue_attribution.services.http.requests.get', side_effect=responses) as mock_get, \
            patch('revenue_attribution.services.http.time.sleep') as mock_sleep:
        assert api.fetch_position_history('0xUser') == []
    assert mock_get.call_count == 3
    assert mock_sleep.call_count == 2


@pytest.mark.parametrize('entry', [
    {'product_key': f'beefy:vault:base:{VAULT}', 'chain': 'base', 'usd_balance': 1},
    {'datetime': '1970-01-01T00:01:40Z', 'chain': 'base', 'usd_balance': 1},
    {'datetime': '1970-01-01T00:01:40Z', 'product_key': f'beefy:vault:base:{VAULT}', 'usd_balance': 1},
    {'datetime': 'yesterday', 'product_key': f'beefy:vault:base:{VAULT}', 'chain': 'base', 'usd_balance': 1},
    {'datetime': '1970-01-01T00:01:40Z', 'product_key': 'beefy:vault:base:not-an-address', 'chain': 'base',
     'usd_balance': 1},
])
def test_malformed_timeline_entry_is_upstream_unavailable(api, entry):
    with patch('revenue_attribution.services.http.requests.get', return_value=json_response([entry])):
        with pytest.raises(UpstreamUnavailable):
            api.fetch_position_history('0xUser')


@pytest.mark.parametrize('rows', [
    [['1970-01-01T00:00:00.000Z']],
    [['1970-01-01T00:00:00.000Z', 100, 'extra']],
    [None],
    [[1700000000, 100]],
    [['not a date', 100]],
])
def test_malformed_tvl_row_is_upstream_unavailable(api, rows):
    with patch('revenue_attribution.services.http.requests.get', return_value=json_response(rows)):
        with pytest.raises(UpstreamUnavailable):
            api.fetch_pool_value_history(VAULT, NetworkId.BASE, ts(0), ts(10))
