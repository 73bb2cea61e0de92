from signet_x402.models import SignatureRecord, SpotlightReceipt


def test_receipt_accepts_hex_block_number():
    payload = {"txHash": "0x1", "blockNumber": "0x1a2b", "guaranteeHours": " 6 "}

    receipt = SpotlightReceipt.from_payload(payload)

    assert receipt.tx_hash == "0x1"
    assert receipt.block_number == 0x1A2B
    assert receipt.guarantee_hours == 6
    assert receipt.raw == payload


def test_receipt_keeps_unreadable_numbers_as_none():
    payload = {
        "transaction": "0xabc",
        "block_number": "pending",
        "guarantee_hours": {"value": 2},
        "signatureIndex": "1.5",
        "spentAmount": 12.28,
    }

    receipt = SpotlightReceipt.from_payload(payload)

    assert receipt.tx_hash == "0xabc"
    assert receipt.block_number is None
    assert receipt.guarantee_hours is None
    assert receipt.signature_index is None
    assert receipt.spent_amount == "12.28"
    assert receipt.raw["block_number"] == "pending"


def test_receipt_integer_fields():
    receipt = SpotlightReceipt.from_payload(
        {"tx_hash": "0x2", "blockNumber": 42, "guaranteeHours": "3", "signatureIndex": 7}
    )
    assert (receipt.block_number, receipt.guarantee_hours, receipt.signature_index) == (42, 3, 7)


def test_signature_record_optional_counts():
    record = SignatureRecord.from_payload(
        {"signatureIndex": 3, "url": "https://a.example", "viewCount": "12", "clickCount": "n/a"}
    )
    assert record.view_count == 12
    assert record.click_count is None
