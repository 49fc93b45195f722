"""Test configuration and fixtures."""

from __future__ import annotations

import pytest

from tests.fakes import (
    InMemoryAlertStore,
    InMemoryCheckpointStore,
    InMemoryReferenceStore,
    InMemoryTradeStore,
)


@pytest.fixture
def sample_senate_trade_raw() -> dict:
    """Sample record from the FMP senate-latest feed."""
    return {
        "symbol": "MSFT",
        "disclosureDate": "2024-03-01",
        "transactionDate": "2024-02-10",
        "firstName": "Tommy",
        "lastName": "Tuberville",
        "office": "Tommy Tuberville",
        "district": "AL",
        "owner": "Self",
        "assetDescription": "Microsoft Corporation",
        "assetType": "Stock",
        "type": "Purchase",
        "amount": "$1,001 - $15,000",
        "comment": "",
        "link": "https://example.com/senate_filing",
    }


@pytest.fixture
def sample_house_trade_raw() -> dict:
    """Sample record from the FMP house-latest feed."""
    return {
        "symbol": "NVDA",
        "disclosureDate": "2024-01-15",
        "transactionDate": "2024-01-02",
        "firstName": "Nancy",
        "lastName": "Pelosi",
        "office": "Nancy Pelosi",
        "district": "CA11",
        "owner": "Spouse",
        "assetDescription": "NVIDIA Corporation",
        "assetType": "Stock",
        "type": "Sale (Partial)",
        "amount": "$15,001 - $50,000",
        "link": "https://example.com/house_filing",
    }


@pytest.fixture
def sample_insider_trade_raw() -> dict:
    """Sample record from the FMP insider-trading feed."""
    return {
        "symbol": "AAPL",
        "filingDate": "2024-04-03",
        "transactionDate": "2024-04-01",
        "reportingCik": "0001214156",
        "companyCik": "0000320193",
        "transactionType": "S-Sale",
        "securitiesOwned": 3280180,
        "reportingName": "COOK TIMOTHY D",
        "typeOfOwner": "director, officer: Chief Executive Officer",
        "acquisitionOrDisposition": "D",
        "securitiesTransacted": 1000,
        "price": 170.5,
        "securityName": "Common Stock",
    }


@pytest.fixture
def checkpoint_store() -> InMemoryCheckpointStore:
    return InMemoryCheckpointStore()


@pytest.fixture
def reference_store() -> InMemoryReferenceStore:
    return InMemoryReferenceStore()


@pytest.fixture
def trade_store() -> InMemoryTradeStore:
    return InMemoryTradeStore()


@pytest.fixture
def alert_store() -> InMemoryAlertStore:
    return InMemoryAlertStore()
