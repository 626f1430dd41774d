"""
Behaviour every storage backend must share. Mixed into one TestCase per
backend; subclasses provide ``make_db``.
"""

from concurrent.futures import ThreadPoolExecutor

from fansite.db import ConstraintViolation
from fansite.models import (
    NewComment,
    NewDownload,
    NewNotification,
    NewSubscriber,
    NewUser,
    NewVideo,
)
from fansite.security import verify_password


class StorageContractTests:
    def make_db(self):
        raise NotImplementedError

    def setUp(self):
        self.db = self.make_db()

    def _video(self, youtube_id="yt-1", **kwargs):
        return self.db.create_video(
            NewVideo(youtube_id=youtube_id, title=f"Video {youtube_id}", **kwargs)
        )

    def _featured_ids(self):
        return [video.id for video in self.db.list_videos() if video.is_featured]

    # Users

    def test_create_user_hashes_password(self):
        user = self.db.create_user(NewUser(username="alice", password="secret"))
        self.assertNotEqual(user.password, "secret")
        self.assertTrue(verify_password("secret", user.password))

        fetched = self.db.get_user_by_username("alice")
        self.assertEqual(fetched.id, user.id)
        self.assertEqual(self.db.get_user(user.id).username, "alice")

    def test_duplicate_username_is_rejected(self):
        self.db.create_user(NewUser(username="alice", password="one"))
        with self.assertRaises(ConstraintViolation):
            self.db.create_user(NewUser(username="alice", password="two"))

    def test_missing_user_is_none(self):
        self.assertIsNone(self.db.get_user(999))
        self.assertIsNone(self.db.get_user_by_username("nobody"))

    # Videos

    def test_create_then_get_video(self):
        created = self._video(
            description="A speedrun", duration="12:34", view_count=10, category="games"
        )
        fetched = self.db.get_video(created.id)
        self.assertEqual(fetched.id, created.id)
        self.assertEqual(fetched.youtube_id, "yt-1")
        self.assertEqual(fetched.title, "Video yt-1")
        self.assertEqual(fetched.description, "A speedrun")
        self.assertEqual(fetched.duration, "12:34")
        self.assertEqual(fetched.view_count, 10)
        self.assertEqual(fetched.category, "games")
        self.assertFalse(fetched.is_featured)
        self.assertIsNotNone(fetched.created_at)

    def test_video_category_defaults_to_general(self):
        self.assertEqual(self._video().category, "general")

    def test_list_videos_by_category(self):
        games = self._video("a", category="games")
        self._video("b", category="music")
        self.assertEqual(
            [v.id for v in self.db.list_videos_by_category("games")], [games.id]
        )

    def test_at_most_one_featured_video(self):
        first = self._video("a", is_featured=True)
        second = self._video("b", is_featured=True)
        self.assertEqual(self._featured_ids(), [second.id])

        self.db.update_video(first.id, {"is_featured": True})
        self.assertEqual(self._featured_ids(), [first.id])

        self.assertTrue(self.db.set_featured_video(second.id))
        self.assertEqual(self._featured_ids(), [second.id])
        self.assertEqual(self.db.get_featured_video().id, second.id)
        self.assertEqual(self.db.get_site_settings().featured_video_id, "b")

    def test_duplicate_youtube_id_is_rejected(self):
        self._video("a")
        with self.assertRaises(ConstraintViolation):
            self._video("a")
        self.assertEqual([v.youtube_id for v in self.db.list_videos()], ["a"])

    def test_update_to_taken_youtube_id_is_rejected(self):
        first = self._video("a")
        second = self._video("b")
        with self.assertRaises(ConstraintViolation):
            self.db.update_video(second.id, {"youtube_id": "a"})
        self.assertEqual(self.db.get_video(second.id).youtube_id, "b")
        self.assertEqual(self.db.get_video(first.id).youtube_id, "a")
        # Re-saving a video with its own id is fine.
        self.assertEqual(
            self.db.update_video(first.id, {"youtube_id": "a"}).youtube_id, "a"
        )

    def test_set_featured_marks_the_requested_video(self):
        self._video("a")
        second = self._video("b")
        self.assertTrue(self.db.set_featured_video(second.id))
        self.assertEqual(self.db.get_featured_video().id, second.id)
        self.assertEqual(self._featured_ids(), [second.id])

    def test_set_featured_on_missing_video_has_no_effect(self):
        video = self._video(is_featured=True)
        self.assertFalse(self.db.set_featured_video(999))
        self.assertEqual(self._featured_ids(), [video.id])

    def test_unfeaturing_clears_featured_video(self):
        video = self._video(is_featured=True)
        updated = self.db.update_video(video.id, {"is_featured": False})
        self.assertFalse(updated.is_featured)
        self.assertIsNone(self.db.get_featured_video())

    def test_changing_youtube_id_keeps_video_featured(self):
        video = self._video("old", is_featured=True)
        updated = self.db.update_video(video.id, {"youtube_id": "new"})
        self.assertTrue(updated.is_featured)
        self.assertEqual(self.db.get_site_settings().featured_video_id, "new")

    def test_update_video_is_partial(self):
        video = self._video(description="before")
        updated = self.db.update_video(video.id, {"title": "Renamed"})
        self.assertEqual(updated.title, "Renamed")
        self.assertEqual(updated.description, "before")
        self.assertIsNone(self.db.update_video(999, {"title": "x"}))

    def test_delete_video_removes_comments_and_featured_pointer(self):
        video = self._video(is_featured=True)
        comment = self.db.create_comment(
            NewComment(video_id=video.id, author="bob", content="hi")
        )
        self.assertTrue(self.db.delete_video(video.id))
        self.assertIsNone(self.db.get_video(video.id))
        self.assertIsNone(self.db.get_comment(comment.id))
        self.assertIsNone(self.db.get_featured_video())
        self.assertFalse(self.db.delete_video(video.id))

    # Downloads

    def test_download_scenario(self):
        download = self.db.create_download(
            NewDownload(
                title="Pixel Dungeon", type="game", version="1.2.0", download_url="/d.zip"
            )
        )
        self.assertEqual(download.download_count, 0)
        self.assertEqual(download.rating, 0)
        self.assertEqual(download.rating_count, 0)

        counts = [self.db.increment_download_count(download.id) for _ in range(3)]
        self.assertEqual(counts, [1, 2, 3])
        self.assertEqual(self.db.get_download(download.id).download_count, 3)

        self.assertIn(download.id, [d.id for d in self.db.list_downloads_by_type("game")])
        self.assertNotIn(download.id, [d.id for d in self.db.list_downloads_by_type("mod")])

    def test_increment_missing_download_is_none(self):
        self.assertIsNone(self.db.increment_download_count(999))

    def test_update_and_delete_download(self):
        download = self.db.create_download(
            NewDownload(title="Tool", type="tool", version="1.0", download_url="/t.zip")
        )
        updated = self.db.update_download(download.id, {"version": "1.1"})
        self.assertEqual(updated.version, "1.1")
        self.assertEqual(updated.title, "Tool")
        self.assertTrue(self.db.delete_download(download.id))
        self.assertIsNone(self.db.get_download(download.id))
        self.assertIsNone(self.db.update_download(download.id, {"version": "2"}))
        self.assertFalse(self.db.delete_download(download.id))

    # Notifications

    def test_notification_read_transition(self):
        notification = self.db.create_notification(
            NewNotification(title="New video", message="Go watch", type="video")
        )
        self.assertFalse(notification.read)
        self.assertTrue(self.db.mark_notification_read(notification.id))
        self.assertTrue(self.db.get_notification(notification.id).read)
        self.assertTrue(self.db.mark_notification_read(notification.id))
        self.assertTrue(self.db.get_notification(notification.id).read)
        self.assertFalse(self.db.mark_notification_read(999))

    def test_notifications_are_listed_newest_first(self):
        first = self.db.create_notification(
            NewNotification(title="one", message="1", type="announcement")
        )
        second = self.db.create_notification(
            NewNotification(title="two", message="2", type="announcement")
        )
        self.assertEqual(
            [n.id for n in self.db.list_notifications()], [second.id, first.id]
        )
        self.assertTrue(self.db.delete_notification(first.id))
        self.assertIsNone(self.db.get_notification(first.id))

    # Subscribers

    def test_subscriber_lookup_by_email(self):
        subscriber = self.db.create_subscriber(NewSubscriber(email="fan@example.com"))
        self.assertEqual(subscriber.notification_type, "all")
        self.assertEqual(
            self.db.get_subscriber_by_email("fan@example.com").id, subscriber.id
        )
        self.assertIsNone(self.db.get_subscriber_by_email("other@example.com"))
        self.assertTrue(self.db.delete_subscriber(subscriber.id))
        self.assertIsNone(self.db.get_subscriber(subscriber.id))

    def test_duplicate_subscriber_email_is_rejected(self):
        self.db.create_subscriber(NewSubscriber(email="fan@example.com"))
        with self.assertRaises(ConstraintViolation):
            self.db.create_subscriber(NewSubscriber(email="fan@example.com"))

    # Site settings

    def test_settings_absent_until_first_write(self):
        self.assertIsNone(self.db.get_site_settings())

    def test_settings_singleton_partial_merge(self):
        self.db.update_site_settings({"youtube_channel_id": "UC123"})
        merged = self.db.update_site_settings({"news_ticker_items": ["a", "b"]})
        self.assertEqual(merged.id, 1)
        self.assertEqual(merged.youtube_channel_id, "UC123")
        self.assertEqual(merged.news_ticker_items, ["a", "b"])

        fetched = self.db.get_site_settings()
        self.assertEqual(fetched.youtube_channel_id, "UC123")
        self.assertEqual(fetched.news_ticker_items, ["a", "b"])
        self.assertFalse(fetched.is_live_streaming)

    def test_livestream_status(self):
        live = self.db.update_livestream_status(True, "stream-1")
        self.assertTrue(live.is_live_streaming)
        self.assertEqual(live.live_stream_id, "stream-1")

        offline = self.db.update_livestream_status(False, "ignored")
        self.assertFalse(offline.is_live_streaming)
        self.assertIsNone(offline.live_stream_id)
        self.assertIsNone(self.db.get_site_settings().live_stream_id)

    # Comments

    def test_comments_start_unapproved(self):
        video = self._video()
        other = self._video("yt-2")
        comment = self.db.create_comment(
            NewComment(video_id=video.id, author="bob", content="great")
        )
        self.db.create_comment(NewComment(video_id=other.id, author="eve", content="meh"))
        self.assertFalse(comment.approved)
        self.assertEqual(
            [c.id for c in self.db.list_comments_by_video(video.id)], [comment.id]
        )

        self.assertTrue(self.db.approve_comment(comment.id))
        self.assertTrue(self.db.get_comment(comment.id).approved)
        self.assertTrue(self.db.delete_comment(comment.id))
        self.assertFalse(self.db.approve_comment(comment.id))
        self.assertFalse(self.db.delete_comment(comment.id))

    def test_comment_may_reference_user(self):
        user = self.db.create_user(NewUser(username="carol", password="pw"))
        video = self._video()
        comment = self.db.create_comment(
            NewComment(video_id=video.id, author="carol", content="hi", user_id=user.id)
        )
        self.assertEqual(self.db.get_comment(comment.id).user_id, user.id)


class ConcurrentIncrementTests:
    """Backends that may be shared between request threads."""

    workers = 8
    increments_per_worker = 5

    def make_db(self):
        raise NotImplementedError

    def test_concurrent_increments_are_not_lost(self):
        db = self.make_db()
        download = db.create_download(
            NewDownload(title="Popular", type="game", version="1.0", download_url="/p.zip")
        )

        def hammer():
            return [
                db.increment_download_count(download.id)
                for _ in range(self.increments_per_worker)
            ]

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = [pool.submit(hammer) for _ in range(self.workers)]
            counts = [count for future in futures for count in future.result()]

        total = self.workers * self.increments_per_worker
        self.assertEqual(sorted(counts), list(range(1, total + 1)))
        self.assertEqual(db.get_download(download.id).download_count, total)
