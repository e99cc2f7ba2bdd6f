"""Tests for the data access layer."""

import pytest
from sqlalchemy.exc import InvalidRequestError

from blog.core.errors import ConflictError
from blog.services import repository
from blog.services.repository import POST_DETAIL_RELATIONS, loader_options


@pytest.mark.unit
class TestLoaderOptions:
    def test_unknown_relation_is_rejected(self):
        with pytest.raises(ValueError, match="tags"):
            loader_options(repository._POST_LOADERS, {"author", "tags"})

    def test_comment_loads_only_its_author(
        self, db_session, test_post, other_user, make_comment
    ):
        comment = make_comment(test_post, other_user, "hi")

        loaded = repository.get_comment(db_session, comment.id, relations={"author"})
        assert loaded.author.id == other_user.id

        with pytest.raises(ValueError, match="post"):
            repository.get_comment(db_session, comment.id, relations={"post"})

    def test_no_relations_still_blocks_lazy_loads(self):
        options = loader_options(repository._POST_LOADERS, ())
        assert len(options) == 1

    def test_nested_relation_implies_parent(self):
        options = loader_options(
            repository._POST_LOADERS, {"comments", "comments.author"}
        )
        # comments.author + raiseload
        assert len(options) == 2


@pytest.mark.unit
class TestPostQueries:
    def test_get_post_only_loads_requested_relations(self, db_session, test_post):
        post = repository.get_post(db_session, test_post.id, relations={"author"})

        assert post.author.email == "author@example.com"
        with pytest.raises(InvalidRequestError):
            post.comments

    def test_get_post_with_detail_relations(
        self, db_session, test_post, other_user, make_comment
    ):
        make_comment(test_post, other_user, "older", age=10)
        make_comment(test_post, other_user, "newer", age=1)

        post = repository.get_post(
            db_session, test_post.id, relations=POST_DETAIL_RELATIONS
        )

        assert [c.content for c in post.comments] == ["newer", "older"]
        assert post.comments[0].author.name == "Other Reader"
        assert post.category.slug == "technology"

    def test_get_post_hides_soft_deleted(self, db_session, make_post, test_user):
        post = make_post(test_user, deleted=True)

        assert repository.get_post(db_session, post.id) is None
        found = repository.get_post(db_session, post.id, include_deleted=True)
        assert found is not None
        assert found.is_deleted

    def test_find_posts_filters_and_orders(self, db_session, make_post, test_user):
        newest = make_post(test_user, title="newest", age=1)
        older = make_post(test_user, title="older", age=5)
        make_post(test_user, title="draft", published=False, age=2)
        make_post(test_user, title="gone", deleted=True, age=3)

        page = repository.find_posts(db_session)

        assert page.total == 2
        assert [p.id for p in page.items] == [newest.id, older.id]
        assert page.items[0].author.id == test_user.id

    def test_find_posts_ties_break_on_id(self, db_session, make_post, test_user):
        posts = [make_post(test_user, title=f"p{i}", age=0) for i in range(3)]

        page = repository.find_posts(db_session)

        assert [p.id for p in page.items] == sorted(
            (p.id for p in posts), reverse=True
        )

    def test_find_posts_pages_partition_results(
        self, db_session, make_post, test_user
    ):
        for i in range(7):
            make_post(test_user, title=f"post {i}", age=i)

        all_ids = [p.id for p in repository.find_posts(db_session, limit=100).items]
        paged = []
        for page_number in (1, 2, 3):
            page = repository.find_posts(db_session, page=page_number, limit=3)
            assert page.total == 7
            paged.extend(p.id for p in page.items)

        assert paged == all_ids
        assert repository.find_posts(db_session, page=4, limit=3).items == []

    def test_find_posts_by_category(
        self, db_session, make_post, test_user, test_category
    ):
        in_category = make_post(test_user, category=test_category)
        make_post(test_user)

        page = repository.find_posts(db_session, category_id=test_category.id)

        assert page.total == 1
        assert page.items[0].id == in_category.id

    def test_find_posts_has_no_author_filter(self, db_session, test_user):
        with pytest.raises(TypeError):
            repository.find_posts(db_session, author_id=test_user.id)


@pytest.mark.unit
class TestPostMutations:
    def test_update_post_rejects_unknown_fields(self, db_session, test_post):
        with pytest.raises(ValueError):
            repository.update_post(db_session, test_post, {"author_id": "someone"})

    def test_update_post_bumps_updated_at(self, db_session, test_post):
        before = test_post.updated_at

        repository.update_post(db_session, test_post, {"title": "Changed"})

        assert test_post.title == "Changed"
        assert test_post.updated_at > before

    def test_soft_delete_keeps_row(self, db_session, test_post):
        repository.soft_delete_post(db_session, test_post)

        assert test_post.deleted_at is not None
        assert repository.get_post(db_session, test_post.id) is None
        assert repository.get_post(
            db_session, test_post.id, include_deleted=True
        ) is not None


@pytest.mark.unit
class TestUsersAndCategories:
    def test_duplicate_email_is_a_conflict(self, db_session, test_user):
        with pytest.raises(ConflictError):
            repository.create_user(
                db_session, email=test_user.email, password_digest="x", name="Dup"
            )

    def test_duplicate_category_slug_is_a_conflict(self, db_session, test_category):
        with pytest.raises(ConflictError):
            repository.create_category(db_session, name="Tech", slug="technology")

    def test_category_counts_exclude_deleted_posts(
        self, db_session, make_post, test_user, test_category
    ):
        empty = repository.create_category(db_session, name="Art", slug="art")
        make_post(test_user, category=test_category)
        make_post(test_user, category=test_category, published=False)
        make_post(test_user, category=test_category, deleted=True)

        rows = repository.list_categories_with_counts(db_session)

        assert [(c.name, n) for c, n in rows] == [("Art", 0), ("Technology", 2)]
        assert rows[0][0].id == empty.id
