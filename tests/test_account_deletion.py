"""
KINNECT - Account Deletion Cascade Tests

DELETE /api/users/profile removes a user and everything depending on them in
one transaction: family ownership hand-over, family purge, memberships,
RSVPs, comments, likes, posts and stored media.
"""

from unittest.mock import patch

import pytest

from kinnect.models import (
    db, Comment, Event, EventAttendee, Family, FamilyMember, Like, Media, Post, PostFamily, User,
)
from kinnect.utils.file_storage import StorageError
from tests.conftest import TEST_PASSWORD, auth_headers, make_family


pytestmark = pytest.mark.timeout(30)


def delete_account(client, user, password=TEST_PASSWORD):
    return client.delete('/api/users/profile', json={'password': password}, headers=auth_headers(user))


def add_media(user, url, thumb_url=None):
    media = Media(
        url=url, thumb_url=thumb_url, type='image', name='pic.jpg', size=10,
        mime_type='image/jpeg', uploaded_by_id=user.id,
    )
    db.session.add(media)
    db.session.commit()
    return media


class TestFamilyOwnership:

    def test_creator_with_other_admin_hands_over_family(self, client, test_user, other_user):
        family = make_family(test_user, members=[(other_user, 'admin')])
        family_id, user_id = family.id, test_user.id

        response = delete_account(client, test_user)

        assert response.status_code == 200
        assert response.get_json()['message'] == 'Your account has been permanently deleted'
        surviving = db.session.get(Family, family_id)
        assert surviving is not None
        assert surviving.created_by == other_user.id
        assert FamilyMember.query.filter_by(user_id=user_id).count() == 0
        assert db.session.get(User, user_id) is None

    def test_sole_member_family_is_deleted(self, client, test_user):
        family = make_family(test_user)
        family_id = family.id

        response = delete_account(client, test_user)

        assert response.status_code == 200
        assert db.session.get(Family, family_id) is None
        assert FamilyMember.query.filter_by(family_id=family_id).count() == 0

    def test_family_without_other_admin_is_purged_with_events(self, client, test_user, other_user):
        family = make_family(test_user, members=[(other_user, 'member')])
        event = Event(family_id=family.id, title='Reunion', created_by_id=other_user.id)
        db.session.add(event)
        db.session.flush()
        db.session.add(EventAttendee(event_id=event.id, user_id=other_user.id, status='attending'))
        db.session.commit()
        family_id, event_id = family.id, event.id

        assert delete_account(client, test_user).status_code == 200

        assert db.session.get(Family, family_id) is None
        assert FamilyMember.query.filter_by(family_id=family_id).count() == 0
        assert db.session.get(Event, event_id) is None
        assert EventAttendee.query.filter_by(event_id=event_id).count() == 0

    def test_events_in_surviving_family_are_reassigned(self, client, test_user, other_user):
        family = make_family(other_user, members=[(test_user, 'member')])
        event = Event(family_id=family.id, title='Picnic', created_by_id=test_user.id)
        db.session.add(event)
        db.session.commit()
        event_id = event.id

        assert delete_account(client, test_user).status_code == 200

        assert db.session.get(Event, event_id).created_by_id == other_user.id


class TestContentCleanup:

    def test_posts_comments_and_likes_are_removed(self, client, test_user, other_user):
        family = make_family(other_user, members=[(test_user, 'member')])
        own_post = Post(content='mine', created_by_id=test_user.id)
        their_post = Post(content='theirs', created_by_id=other_user.id)
        db.session.add_all([own_post, their_post])
        db.session.flush()
        db.session.add_all([
            PostFamily(post_id=own_post.id, family_id=family.id),
            PostFamily(post_id=their_post.id, family_id=family.id),
        ])
        own_comment = Comment(post_id=their_post.id, user_id=test_user.id, content='nice')
        comment_on_own = Comment(post_id=own_post.id, user_id=other_user.id, content='cool')
        db.session.add_all([own_comment, comment_on_own])
        db.session.flush()
        reply = Comment(post_id=their_post.id, user_id=other_user.id, content='thanks', parent_id=own_comment.id)
        db.session.add_all([
            reply,
            Like(user_id=test_user.id, target_type='post', target_id=their_post.id),
            Like(user_id=other_user.id, target_type='post', target_id=own_post.id),
            Like(user_id=other_user.id, target_type='comment', target_id=own_comment.id),
        ])
        db.session.commit()
        own_post_id, their_post_id, reply_id = own_post.id, their_post.id, reply.id
        own_comment_id = own_comment.id

        assert delete_account(client, test_user).status_code == 200

        assert db.session.get(Post, own_post_id) is None
        assert PostFamily.query.filter_by(post_id=own_post_id).count() == 0
        assert Comment.query.filter_by(post_id=own_post_id).count() == 0
        assert db.session.get(Post, their_post_id) is not None
        assert db.session.get(Comment, own_comment_id) is None
        assert db.session.get(Comment, reply_id).parent_id is None
        assert Like.query.count() == 0

    def test_media_objects_are_deleted(self, client, test_user):
        add_media(
            test_user,
            'https://kinnect-test.s3.us-east-1.amazonaws.com/u/image/1-pic.jpg',
            'https://kinnect-test.s3.us-east-1.amazonaws.com/u/image/thumbs/1-pic.jpg',
        )
        with patch('kinnect.utils.account_deletion.delete_files') as delete_files:
            response = delete_account(client, test_user)

        assert response.status_code == 200
        delete_files.assert_called_once_with([
            'https://kinnect-test.s3.us-east-1.amazonaws.com/u/image/1-pic.jpg',
            'https://kinnect-test.s3.us-east-1.amazonaws.com/u/image/thumbs/1-pic.jpg',
        ])
        assert Media.query.count() == 0

    def test_media_urls_are_removed_from_other_posts(self, client, test_user, other_user):
        family = make_family(other_user, members=[(test_user, 'member')])
        url = 'https://kinnect-test.s3.us-east-1.amazonaws.com/u/image/1-pic.jpg'
        kept = 'https://cdn.example.com/other.jpg'
        add_media(test_user, url)
        reshared = Post(content='look', media_urls=[url, kept], created_by_id=other_user.id)
        db.session.add(reshared)
        db.session.flush()
        db.session.add(PostFamily(post_id=reshared.id, family_id=family.id))
        db.session.commit()
        post_id = reshared.id

        with patch('kinnect.utils.account_deletion.delete_files'):
            assert delete_account(client, test_user).status_code == 200

        assert db.session.get(Post, post_id).media_urls == [kept]

    def test_purged_family_takes_its_only_posts(self, client, test_user, other_user):
        family = make_family(test_user, members=[(other_user, 'member')])
        their_post = Post(content='family only', created_by_id=other_user.id)
        db.session.add(their_post)
        db.session.flush()
        db.session.add(PostFamily(post_id=their_post.id, family_id=family.id))
        db.session.commit()
        post_id = their_post.id

        assert delete_account(client, test_user).status_code == 200

        assert db.session.get(Post, post_id) is None


class TestDeletionFailures:

    def test_wrong_password_changes_nothing(self, client, test_user):
        family = make_family(test_user)
        family_id, user_id = family.id, test_user.id

        response = delete_account(client, test_user, password='not-my-password')

        assert response.status_code == 401
        assert response.get_json()['message'] == 'Invalid password'
        assert db.session.get(User, user_id) is not None
        assert db.session.get(Family, family_id) is not None
        assert FamilyMember.query.filter_by(family_id=family_id).count() == 1

    def test_missing_password(self, client, test_user):
        response = client.delete('/api/users/profile', json={}, headers=auth_headers(test_user))
        assert response.status_code == 400
        assert response.get_json()['errors'][0]['field'] == 'password'

    def test_storage_failure_rolls_back_everything(self, client, test_user, other_user):
        family = make_family(test_user)
        post = Post(content='hello', created_by_id=test_user.id)
        db.session.add(post)
        db.session.flush()
        db.session.add(PostFamily(post_id=post.id, family_id=family.id))
        db.session.commit()
        add_media(test_user, 'https://kinnect-test.s3.us-east-1.amazonaws.com/u/image/1-pic.jpg')
        family_id, post_id, user_id = family.id, post.id, test_user.id

        with patch('kinnect.utils.account_deletion.delete_files', side_effect=StorageError('S3 down')):
            response = delete_account(client, test_user)

        assert response.status_code == 500
        body = response.get_json()
        assert body['success'] is False
        assert body['message'] == 'Server error'
        assert db.session.get(User, user_id) is not None
        assert db.session.get(Family, family_id) is not None
        assert FamilyMember.query.filter_by(family_id=family_id).count() == 1
        assert db.session.get(Post, post_id) is not None
        assert PostFamily.query.filter_by(post_id=post_id).count() == 1
        assert Media.query.filter_by(uploaded_by_id=user_id).count() == 1
