"""
Tests for the tag consistency engine (TagService)
"""
import asyncio
import pytest
from unittest.mock import patch
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from exceptions import NotFoundException, TagMaintenanceException
from models import PostTag, Tag
from repositories.post_repository import PostRepository
from repositories.posttag_repository import PostTagRepository
from services.tag_service import TagService


def _locked_error():
    return OperationalError("UPDATE post SET tags=?", {}, Exception("database is locked"))


class TestCommentCreated:
    """Tags flow from a new comment onto its post"""

    def test_first_comment_tags_post(self, tag_service, make_post, assert_consistent):
        post_id = make_post()

        tags = tag_service.on_comment_created(post_id, "hello #alpha #Beta")

        assert set(tags) == {"#alpha", "#beta"}
        assert set(assert_consistent(post_id)) == {"#alpha", "#beta"}
        assert PostTag.query.filter_by(post_id=post_id).count() == 2

    def test_union_with_existing_tags(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        tag_service.on_comment_created(post_id, "#one #two")

        tags = tag_service.on_comment_created(post_id, "#two #three")

        assert tags == ["#one", "#two", "#three"]
        assert assert_consistent(post_id) == ["#one", "#two", "#three"]

    def test_tags_shared_across_posts(self, tag_service, make_post):
        first, second = make_post(), make_post()
        tag_service.on_comment_created(first, "#shared")
        tag_service.on_comment_created(second, "#SHARED")

        assert Tag.query.count() == 1
        assert PostTagRepository.get_post_ids_by_tag("#shared") == [first, second]

    def test_no_hashtags_skips_transaction(self, tag_service, make_post):
        post_id = make_post()

        with patch("services.tag_service.transaction") as mock_transaction:
            assert tag_service.on_comment_created(post_id, "nothing to see") is None

        mock_transaction.assert_not_called()
        assert PostRepository.get_by_id(post_id).tags is None

    def test_unknown_post(self, tag_service):
        with pytest.raises(NotFoundException):
            tag_service.on_comment_created(999, "#orphan")
        assert Tag.query.count() == 0


class TestCommentUpdated:
    """Edits only ever add tags"""

    def test_edit_keeps_previous_tags(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        tag_service.on_comment_created(post_id, "#a #b")

        tags = tag_service.on_comment_updated(post_id, "#a #b #c")

        assert set(tags) == {"#a", "#b", "#c"}
        assert set(assert_consistent(post_id)) == {"#a", "#b", "#c"}

    def test_edit_removing_hashtag_does_not_shrink(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        tag_service.on_comment_created(post_id, "#a #b")

        assert tag_service.on_comment_updated(post_id, "#a") == ["#a", "#b"]
        assert assert_consistent(post_id) == ["#a", "#b"]


class TestCommentDeleted:
    """Tags leave a post only when no surviving comment mentions them"""

    def test_shared_tag_survives_until_last_reference(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        first, second = "first #shared", "second #shared"
        tag_service.on_comment_created(post_id, first)
        tag_service.on_comment_created(post_id, second)

        tags = tag_service.on_comment_deleted(post_id, first, [second])
        assert tags == ["#shared"]
        assert assert_consistent(post_id) == ["#shared"]

        tag_service.on_comment_deleted(post_id, second, [])
        assert PostRepository.get_by_id(post_id).tags is None
        assert PostTag.query.filter_by(post_id=post_id).count() == 0

    def test_last_tagged_comment_clears_field(self, tag_service, make_post):
        post_id = make_post()
        tag_service.on_comment_created(post_id, "#x")

        assert tag_service.on_comment_deleted(post_id, "#x", ["plain sibling"]) == []

        assert PostRepository.get_by_id(post_id).tags is None
        assert PostTag.query.filter_by(post_id=post_id).count() == 0
        # Tags themselves are never removed by the engine
        assert Tag.query.filter_by(name="#x").count() == 1

    def test_unrelated_tag_preserved(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        tag_service.add_post_tags(post_id, ["#y"])
        tag_service.on_comment_created(post_id, "#x")

        tag_service.on_comment_deleted(post_id, "#x", [])

        assert assert_consistent(post_id) == ["#y"]

    def test_only_deleted_comment_tags_considered(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        tag_service.on_comment_created(post_id, "#a #b #c")

        tags = tag_service.on_comment_deleted(post_id, "#a #b", ["#b"])

        assert tags == ["#b", "#c"]
        assert assert_consistent(post_id) == ["#b", "#c"]

    def test_nothing_to_remove_writes_nothing(self, tag_service, make_post):
        post_id = make_post()
        tag_service.on_comment_created(post_id, "#keep")

        with patch.object(PostRepository, "write_tags") as mock_write:
            assert tag_service.on_comment_deleted(post_id, "#gone", []) == ["#keep"]
        mock_write.assert_not_called()

    def test_no_hashtags_is_noop(self, tag_service, make_post):
        post_id = make_post()
        assert tag_service.on_comment_deleted(post_id, "plain text", ["#a"]) is None

    def test_siblings_loaded_lazily(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        tag_service.on_comment_created(post_id, "#a #b")
        loaded = []

        def siblings():
            loaded.append(True)
            return ["still #a"]

        assert tag_service.on_comment_deleted(post_id, "#a #b", siblings) == ["#a"]
        assert loaded == [True]
        assert assert_consistent(post_id) == ["#a"]

    def test_mixed_case_field_entries(self, tag_service, make_post, assert_consistent):
        post_id = make_post(tags=["#Legacy", "#other"])
        tag_service.reconcile_post(post_id)

        assert tag_service.on_comment_deleted(post_id, "#legacy", []) == ["#other"]
        assert assert_consistent(post_id) == ["#other"]

    def test_mixed_case_field_is_folded_on_write(self, tag_service, make_post, assert_consistent):
        post_id = make_post(tags=["#Legacy"])

        assert tag_service.reconcile_post(post_id) == ["#legacy"]
        assert tag_service.on_comment_created(post_id, "again #legacy") == ["#legacy"]

        assert assert_consistent(post_id) == ["#legacy"]
        assert [tag.name for tag in Tag.query.all()] == ["#legacy"]

    def test_mixed_case_kept_entry_is_folded_on_delete(self, tag_service, make_post, assert_consistent):
        post_id = make_post(tags=["#Keep", "#drop"])

        assert tag_service.on_comment_deleted(post_id, "#drop", []) == ["#keep"]
        assert assert_consistent(post_id) == ["#keep"]
        assert Tag.query.filter_by(name="#Keep").count() == 0


class TestManualTags:
    """Tags added by hand go through the same write path"""

    def test_add_post_tags(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        tag_service.on_comment_created(post_id, "#from_comment")

        tags = tag_service.add_post_tags(post_id, ["Priority", "#from_comment"])

        assert tags == ["#from_comment", "#priority"]
        assert assert_consistent(post_id) == ["#from_comment", "#priority"]

    def test_unusable_labels_are_noop(self, tag_service, make_post):
        post_id = make_post()
        assert tag_service.add_post_tags(post_id, ["#", "  "]) is None


class TestFailureHandling:
    """Writes are atomic and transient errors are retried"""

    def test_failure_rolls_back_both_sides(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        tag_service.on_comment_created(post_id, "#before")

        with patch.object(PostRepository, "write_tags", side_effect=SQLAlchemyError("disk full")):
            with pytest.raises(TagMaintenanceException):
                tag_service.on_comment_created(post_id, "#after")

        assert assert_consistent(post_id) == ["#before"]
        assert Tag.query.filter_by(name="#after").count() == 0

    def test_transient_error_is_retried(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        real_set_associations = PostTagRepository.set_associations
        calls = []

        def flaky(post_id, tag_ids):
            calls.append(post_id)
            if len(calls) == 1:
                raise _locked_error()
            return real_set_associations(post_id, tag_ids)

        with patch.object(PostTagRepository, "set_associations", side_effect=flaky):
            tags = tag_service.on_comment_created(post_id, "#retry")

        assert tags == ["#retry"]
        assert len(calls) == 2
        assert assert_consistent(post_id) == ["#retry"]

    def test_lock_contention_is_retried(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        tag_service.on_comment_created(post_id, "#first")
        real_lock = PostRepository.lock
        attempts = []

        def contended(post_id):
            attempts.append(post_id)
            if len(attempts) == 1:
                raise _locked_error()
            return real_lock(post_id)

        with patch.object(PostRepository, "lock", side_effect=contended):
            tags = tag_service.on_comment_created(post_id, "#second")

        assert tags == ["#first", "#second"]
        assert len(attempts) == 2
        assert assert_consistent(post_id) == ["#first", "#second"]

    def test_gives_up_after_retry_limit(self, make_post, assert_consistent):
        service = TagService(retry_attempts=2, retry_delay=0)
        post_id = make_post()

        with patch.object(PostTagRepository, "set_associations", side_effect=_locked_error()) as mock_set:
            with pytest.raises(TagMaintenanceException) as exc_info:
                service.on_comment_created(post_id, "#never")

        assert mock_set.call_count == 2
        assert exc_info.value.post_id == post_id
        assert assert_consistent(post_id) == []

    def test_cancellation_rolls_back(self, tag_service, make_post, assert_consistent):
        post_id = make_post()

        with patch.object(PostRepository, "write_tags", side_effect=asyncio.CancelledError):
            with pytest.raises(asyncio.CancelledError):
                tag_service.on_comment_created(post_id, "#cancelled")

        assert assert_consistent(post_id) == []
        assert Tag.query.count() == 0


class TestRepair:
    """Reconciliation entry points"""

    def test_reconcile_rewrites_associations_from_field(self, tag_service, make_post, assert_consistent):
        post_id = make_post(tags=["#b", "#a"])

        assert tag_service.reconcile_post(post_id) == ["#b", "#a"]
        assert assert_consistent(post_id) == ["#b", "#a"]

    def test_rebuild_from_comments_drops_manual_tags(self, tag_service, make_post, assert_consistent):
        post_id = make_post()
        tag_service.add_post_tags(post_id, ["manual"])

        tags = tag_service.rebuild_from_comments(post_id, ["#z and #y", "#y"])

        assert tags == ["#y", "#z"]
        assert assert_consistent(post_id) == ["#y", "#z"]

    def test_from_settings(self):
        service = TagService.from_settings({"tags": {"marker": "+", "retry_attempts": 0}})
        assert service.marker == "+"
        assert service.retry_attempts == 1
