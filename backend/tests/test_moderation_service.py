"""
Tests for moderation of upload and delete requests.
"""
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wallvault.models.delete_request import DeleteRequest, DeleteRequestStatus
from wallvault.models.upload_request import UploadRequestStatus
from wallvault.models.wallpaper import Wallpaper
from wallvault.services.exceptions import ModerationError, NotFoundError
from wallvault.services.moderation_service import ModerationService
from wallvault.services.upload_service import UploadService
from wallvault.storage.exceptions import StorageError


@pytest.fixture
async def staged_request(db_session, r2_client, creator_user):
    return await UploadService.create_upload_request(
        db_session,
        r2_client,
        creator_user,
        data=b"staged-bytes",
        filename="forest.jpg",
        content_type="image/jpeg",
        wallpaper_type="desktop",
        tags=["forest", "green"],
    )


async def _published_wallpaper(db: AsyncSession, r2_client, fake_r2) -> Wallpaper:
    await r2_client.put_object("wallpapers/1_ab_pub.jpg", b"published", "image/jpeg")
    wallpaper = Wallpaper(
        url="https://pub-test.r2.dev/wallpapers/1_ab_pub.jpg",
        r2_key="wallpapers/1_ab_pub.jpg",
        file_path="wallpapers/1_ab_pub.jpg",
    )
    db.add(wallpaper)
    await db.commit()
    await db.refresh(wallpaper)
    return wallpaper


class TestUploadRequests:
    """Tests for approving and rejecting staged uploads."""

    @pytest.mark.asyncio
    async def test_approve_publishes_wallpaper(
        self, db_session, r2_client, fake_r2, staged_request, admin_user, creator_user
    ):
        staging = staged_request.staging_key

        approved = await ModerationService.approve_upload_request(
            db_session, r2_client, staged_request.id, admin_user
        )

        assert approved.status == UploadRequestStatus.APPROVED
        assert approved.reviewed_by == admin_user.id
        assert approved.final_key.startswith("wallpapers/")
        assert fake_r2.objects[approved.final_key][0] == b"staged-bytes"
        assert staging not in fake_r2.objects

        wallpaper = await db_session.get(Wallpaper, approved.wallpaper_id)
        assert wallpaper.r2_key == approved.final_key
        assert wallpaper.uploaded_by == creator_user.id
        assert wallpaper.tags == ["forest", "green"]
        assert wallpaper.url == f"https://pub-test.r2.dev/{approved.final_key}"

    @pytest.mark.asyncio
    async def test_approve_twice_is_rejected(self, db_session, r2_client, staged_request, admin_user):
        await ModerationService.approve_upload_request(db_session, r2_client, staged_request.id, admin_user)

        with pytest.raises(ModerationError):
            await ModerationService.approve_upload_request(db_session, r2_client, staged_request.id, admin_user)

    @pytest.mark.asyncio
    async def test_copy_failure_keeps_request_staged(
        self, db_session, r2_client, fake_r2, staged_request, admin_user
    ):
        del fake_r2.objects[staged_request.staging_key]

        with pytest.raises(StorageError):
            await ModerationService.approve_upload_request(db_session, r2_client, staged_request.id, admin_user)

        await db_session.refresh(staged_request)
        assert staged_request.status == UploadRequestStatus.STAGED
        assert (await db_session.execute(select(Wallpaper))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_cleanup_failure_does_not_undo_approval(
        self, db_session, r2_client, fake_r2, staged_request, admin_user
    ):
        fake_r2.failing_keys.add(staged_request.staging_key)
        # Copy reads the source through the bucket, only the DELETE targets the failing key
        approved = await ModerationService.approve_upload_request(
            db_session, r2_client, staged_request.id, admin_user
        )

        assert approved.status == UploadRequestStatus.APPROVED
        assert staged_request.staging_key in fake_r2.objects

    @pytest.mark.asyncio
    async def test_reject_removes_staging_object(
        self, db_session, r2_client, fake_r2, staged_request, admin_user
    ):
        rejected = await ModerationService.reject_upload_request(
            db_session, r2_client, staged_request.id, admin_user, reason="Low resolution"
        )

        assert rejected.status == UploadRequestStatus.REJECTED
        assert rejected.rejection_reason == "Low resolution"
        assert staged_request.staging_key not in fake_r2.objects

    @pytest.mark.asyncio
    async def test_unknown_request(self, db_session, r2_client, admin_user):
        with pytest.raises(NotFoundError):
            await ModerationService.reject_upload_request(db_session, r2_client, "missing", admin_user)


class TestDeleteRequests:
    """Tests for delete request approval."""

    @pytest.mark.asyncio
    async def test_approve_deletes_object_and_row(
        self, db_session, r2_client, fake_r2, creator_user, admin_user
    ):
        wallpaper = await _published_wallpaper(db_session, r2_client, fake_r2)
        request = DeleteRequest(requested_by=creator_user.id, wallpaper_id=wallpaper.id)
        db_session.add(request)
        await db_session.commit()

        approved = await ModerationService.approve_delete_request(db_session, r2_client, request.id, admin_user)

        assert approved.status == DeleteRequestStatus.APPROVED
        assert approved.file_deleted is True
        assert approved.r2_key == "wallpapers/1_ab_pub.jpg"
        assert "wallpapers/1_ab_pub.jpg" not in fake_r2.objects
        assert await db_session.get(Wallpaper, wallpaper.id) is None

    @pytest.mark.asyncio
    async def test_already_missing_object_still_approves(
        self, db_session, r2_client, fake_r2, creator_user, admin_user
    ):
        wallpaper = await _published_wallpaper(db_session, r2_client, fake_r2)
        fake_r2.objects.clear()
        request = DeleteRequest(requested_by=creator_user.id, wallpaper_id=wallpaper.id)
        db_session.add(request)
        await db_session.commit()

        approved = await ModerationService.approve_delete_request(db_session, r2_client, request.id, admin_user)

        assert approved.status == DeleteRequestStatus.APPROVED
        assert approved.file_deleted is False

    @pytest.mark.asyncio
    async def test_reject_keeps_wallpaper(self, db_session, r2_client, fake_r2, creator_user, admin_user):
        wallpaper = await _published_wallpaper(db_session, r2_client, fake_r2)
        request = DeleteRequest(requested_by=creator_user.id, wallpaper_id=wallpaper.id)
        db_session.add(request)
        await db_session.commit()

        rejected = await ModerationService.reject_delete_request(db_session, request.id, admin_user)

        assert rejected.status == DeleteRequestStatus.REJECTED
        assert await db_session.get(Wallpaper, wallpaper.id) is not None
        assert "wallpapers/1_ab_pub.jpg" in fake_r2.objects
