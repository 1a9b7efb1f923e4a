"""Tests for DedupChecker and the DynamoDB repositories"""

import asyncio
import time

import pytest

from conftest import FakeTable, client_error
from fijian_rag.dedup import DedupChecker, PendingSubmissionRepository, VerifiedStoreRepository
from fijian_rag.errors import MalformedInputError, UpstreamServiceError
from fijian_rag.models import DataKind


def make_checker(pending_items=(), translations=(), vocab=(), pending_error=None, verified_error=None):
    pending_table = FakeTable(pending_items, error=pending_error)
    translations_table = FakeTable(translations, error=verified_error)
    vocab_table = FakeTable(vocab, error=verified_error)
    checker = DedupChecker(
        pending=PendingSubmissionRepository(table=pending_table, index_name="GSI_UnverifiedKey"),
        verified=VerifiedStoreRepository(translations_table=translations_table, vocab_table=vocab_table),
    )
    return checker, pending_table, translations_table, vocab_table


@pytest.mark.parametrize(
    "key1, key2",
    [(None, "english"), ("bula", None), ("", "hello"), ("bula", "   ")],
)
def test_missing_key_fails_closed(key1, key2):
    checker, pending, translations, _ = make_checker()

    assert asyncio.run(checker.is_duplicate("translation", key1, key2)) is True
    assert pending.calls == []
    assert translations.calls == []


def test_pending_match_alone_is_a_duplicate():
    checker, pending, _, _ = make_checker(pending_items=[{"dataKey": "t-1", "dedupKey": "bula::hello"}])

    assert asyncio.run(checker.is_duplicate(DataKind.TRANSLATION, " Bula ", "HELLO")) is True

    name, kwargs = pending.calls[0]
    assert name == "query"
    assert kwargs["IndexName"] == "GSI_UnverifiedKey"
    assert kwargs["Limit"] == 1


def test_verified_match_alone_is_a_duplicate():
    checker, _, translations, _ = make_checker(translations=[{"fijian": "bula", "english": "hello"}])

    assert asyncio.run(checker.is_duplicate("translation", "bula", "hello")) is True
    assert translations.calls[0] == ("get_item", {"Key": {"fijian": "bula", "english": "hello"}})


def test_unknown_pair_is_not_a_duplicate():
    checker, _, _, _ = make_checker(
        pending_items=[{"dedupKey": "vale::house"}],
        translations=[{"fijian": "vale", "english": "house"}],
    )

    assert asyncio.run(checker.is_duplicate("translation", "bula", "hello")) is False


def test_vocab_uses_word_meaning_key():
    checker, _, translations, vocab = make_checker(vocab=[{"word": "kana", "meaning": "to eat"}])

    assert asyncio.run(checker.is_duplicate("vocab", "kana", "to eat")) is True
    assert vocab.calls[0] == ("get_item", {"Key": {"word": "kana", "meaning": "to eat"}})
    assert translations.calls == []


def test_both_lookups_run_even_when_first_matches():
    checker, pending, translations, _ = make_checker(pending_items=[{"dedupKey": "bula::hello"}])

    asyncio.run(checker.is_duplicate("translation", "bula", "hello"))

    assert len(pending.calls) == 1
    assert len(translations.calls) == 1


def test_lookup_failure_propagates():
    checker, _, _, _ = make_checker(pending_error=client_error("ProvisionedThroughputExceededException"))

    with pytest.raises(UpstreamServiceError) as exc_info:
        asyncio.run(checker.is_duplicate("translation", "bula", "hello"))

    assert exc_info.value.service == "dynamodb"
    assert exc_info.value.transient is True


def test_verified_failure_propagates_as_permanent():
    checker, _, _, _ = make_checker(verified_error=client_error("AccessDeniedException", "GetItem", 403))

    with pytest.raises(UpstreamServiceError) as exc_info:
        asyncio.run(checker.is_duplicate("vocab", "kana", "to eat"))

    assert exc_info.value.transient is False


def test_unknown_kind_is_malformed_input():
    checker, _, _, _ = make_checker()

    with pytest.raises(MalformedInputError):
        asyncio.run(checker.is_duplicate("sentence", "bula", "hello"))


def test_filter_new_keeps_order_and_drops_duplicates():
    checker, _, _, _ = make_checker(
        pending_items=[{"dedupKey": "vale::house"}],
        vocab=[{"word": "kana", "meaning": "to eat"}],
    )
    pairs = [("bula", "hello"), ("vale", "house"), ("kana", "to eat"), ("ika", "fish"), ("", "blank")]

    assert asyncio.run(checker.filter_new("vocab", pairs)) == [("bula", "hello"), ("ika", "fish")]


def test_put_submission_stores_normalized_dedup_key():
    table = FakeTable()
    repo = PendingSubmissionRepository(table=table, index_name="GSI_UnverifiedKey")

    item = asyncio.run(repo.put_submission("translation", "t-1", " Bula ", "Hello", {"source": "article-1"}))

    assert item["dedupKey"] == "bula::hello"
    assert item["verified"] == "false"
    assert item["source"] == "article-1"
    assert asyncio.run(repo.exists_by_dedup_key("bula::hello")) is True


def test_mark_verified_updates_flag():
    table = FakeTable([{"dataType": "translation", "dataKey": "t-1", "verified": "false"}])
    repo = PendingSubmissionRepository(table=table, index_name="GSI_UnverifiedKey")

    asyncio.run(repo.mark_verified("translation", "t-1", verified_by="reviewer"))

    assert table.items[0]["verified"] == "true"
    assert table.items[0]["verifiedBy"] == "reviewer"


def test_put_verified_then_exists():
    repo = VerifiedStoreRepository(translations_table=FakeTable(), vocab_table=FakeTable())

    asyncio.run(repo.put_verified("vocab", "kana ", "to eat", {"partOfSpeech": "verb"}))

    assert asyncio.run(repo.exists(DataKind.VOCAB, "kana", "to eat")) is True
    assert asyncio.run(repo.exists(DataKind.TRANSLATION, "kana", "to eat")) is False


class SlowTable(FakeTable):
    """Verified table whose lookup finishes after a short delay."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.finished = 0

    def get_item(self, Key):
        time.sleep(0.05)
        response = super().get_item(Key)
        self.finished += 1
        return response


def test_failed_lookup_waits_for_the_other_lookup():
    slow_vocab = SlowTable([{"word": "kana", "meaning": "to eat"}])
    checker = DedupChecker(
        pending=PendingSubmissionRepository(
            table=FakeTable(error=client_error("ThrottlingException")), index_name="GSI_UnverifiedKey"
        ),
        verified=VerifiedStoreRepository(translations_table=FakeTable(), vocab_table=slow_vocab),
    )

    async def check():
        with pytest.raises(UpstreamServiceError):
            await checker.is_duplicate("vocab", "kana", "to eat")
        return slow_vocab.finished

    # the verified lookup has completed by the time the error surfaces
    assert asyncio.run(check()) == 1
