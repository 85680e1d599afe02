"""
Unit Tests for PartnershipService

Covers:
1. Request / accept / reject / cancel transitions
2. Preconditions (reciprocal request, already pending, unavailable target)
3. Authorization of respond and cancel
4. Unpairing and the symmetric partner read path
5. Concurrent transitions on the same students
"""
import asyncio
import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from app.models import PartnershipRequest, Student
from app.services.results import ErrorKind
from app.utils.constants import PartnershipStatus, RequestAction, RequestDirection, RequestStatus
from app.utils.helpers import pair_key


# =============================================================================
# SEND REQUEST
# =============================================================================
class TestSendRequest:
    """Test sending partnership requests"""

    async def test_send_request_marks_both_students_pending(
        self, partnership_service, create_student, reload
    ):
        a = await create_student()
        b = await create_student()

        result = await partnership_service.send_request(a.id, b.id)

        assert result.ok
        request = await reload(PartnershipRequest, result.value)
        assert request.status == RequestStatus.PENDING.value
        assert request.requester_id == a.id
        assert request.target_id == b.id
        assert (await reload(Student, a.id)).partnership_status == PartnershipStatus.PENDING_SENT.value
        assert (await reload(Student, b.id)).partnership_status == PartnershipStatus.PENDING_RECEIVED.value

    async def test_reciprocal_request_is_refused(self, partnership_service, create_student):
        """B already asked A, so A must accept instead of sending"""
        a = await create_student()
        b = await create_student()
        assert (await partnership_service.send_request(b.id, a.id)).ok

        result = await partnership_service.send_request(a.id, b.id)

        assert result.error == ErrorKind.RECIPROCAL_REQUEST_EXISTS

    async def test_requester_with_pending_request_is_refused(self, partnership_service, create_student):
        a = await create_student()
        b = await create_student()
        c = await create_student()
        assert (await partnership_service.send_request(a.id, b.id)).ok

        result = await partnership_service.send_request(a.id, c.id)

        assert result.error == ErrorKind.ALREADY_PARTNERED_OR_PENDING

    async def test_paired_requester_is_refused(self, partnership_service, create_pair, create_student):
        a, _ = await create_pair()
        c = await create_student()

        result = await partnership_service.send_request(a.id, c.id)

        assert result.error == ErrorKind.ALREADY_PARTNERED_OR_PENDING

    async def test_target_with_pending_request_is_unavailable(
        self, partnership_service, create_student
    ):
        a = await create_student()
        b = await create_student()
        c = await create_student()
        assert (await partnership_service.send_request(a.id, b.id)).ok

        result = await partnership_service.send_request(c.id, b.id)

        assert result.error == ErrorKind.TARGET_UNAVAILABLE

    async def test_self_request_is_refused(self, partnership_service, create_student):
        a = await create_student()

        result = await partnership_service.send_request(a.id, a.id)

        assert result.error == ErrorKind.TARGET_UNAVAILABLE

    async def test_missing_target_is_unavailable(self, partnership_service, create_student):
        a = await create_student()

        result = await partnership_service.send_request(a.id, uuid.uuid4())

        assert result.error == ErrorKind.TARGET_UNAVAILABLE

    async def test_missing_requester(self, partnership_service, create_student):
        b = await create_student()

        result = await partnership_service.send_request(uuid.uuid4(), b.id)

        assert result.error == ErrorKind.STUDENT_NOT_FOUND

    async def test_failed_request_writes_nothing(self, partnership_service, create_student, reload):
        a = await create_student()
        b = await create_student(partnership_status=PartnershipStatus.PENDING_SENT.value)

        result = await partnership_service.send_request(a.id, b.id)

        assert not result.ok
        assert (await reload(Student, a.id)).partnership_status == PartnershipStatus.NONE.value
        assert await partnership_service.list_requests(a.id) == []


# =============================================================================
# RESPOND
# =============================================================================
class TestRespond:
    """Test accepting and rejecting requests"""

    async def test_accept_pairs_both_students(self, partnership_service, create_student, reload):
        a = await create_student()
        b = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value

        result = await partnership_service.respond(request_id, b.id, RequestAction.ACCEPT)

        assert result.ok
        a_after = await reload(Student, a.id)
        b_after = await reload(Student, b.id)
        assert a_after.partnership_status == PartnershipStatus.PAIRED.value
        assert b_after.partnership_status == PartnershipStatus.PAIRED.value
        assert a_after.partner_id == b.id
        assert b_after.partner_id == a.id
        request = await reload(PartnershipRequest, request_id)
        assert request.status == RequestStatus.ACCEPTED.value
        assert request.responded_at is not None
        assert request.pending_pair_key is None

    async def test_reject_resets_both_students(self, partnership_service, create_student, reload):
        a = await create_student()
        b = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value

        result = await partnership_service.respond(request_id, b.id, RequestAction.REJECT)

        assert result.ok
        assert (await reload(Student, a.id)).partnership_status == PartnershipStatus.NONE.value
        assert (await reload(Student, b.id)).partnership_status == PartnershipStatus.NONE.value
        assert (await reload(PartnershipRequest, request_id)).status == RequestStatus.REJECTED.value

    async def test_request_round_trip(self, partnership_service, create_student, reload):
        """After a rejection both students can immediately pair again"""
        a = await create_student()
        b = await create_student()
        first = (await partnership_service.send_request(a.id, b.id)).value
        assert (await partnership_service.respond(first, b.id, RequestAction.REJECT)).ok

        second = await partnership_service.send_request(a.id, b.id)

        assert second.ok
        assert second.value != first

    async def test_only_target_may_respond(self, partnership_service, create_student, reload):
        a = await create_student()
        b = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value

        result = await partnership_service.respond(request_id, a.id, RequestAction.ACCEPT)

        assert result.error == ErrorKind.UNAUTHORIZED
        assert (await reload(PartnershipRequest, request_id)).status == RequestStatus.PENDING.value

    async def test_closed_request_is_not_actionable(self, partnership_service, create_student):
        a = await create_student()
        b = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value
        assert (await partnership_service.respond(request_id, b.id, RequestAction.REJECT)).ok

        result = await partnership_service.respond(request_id, b.id, RequestAction.ACCEPT)

        assert result.error == ErrorKind.REQUEST_NOT_ACTIONABLE

    async def test_unknown_request_is_not_actionable(self, partnership_service, create_student):
        b = await create_student()

        result = await partnership_service.respond(uuid.uuid4(), b.id, RequestAction.ACCEPT)

        assert result.error == ErrorKind.REQUEST_NOT_ACTIONABLE

    async def test_non_party_cannot_tell_request_exists(
        self, partnership_service, create_student, reload
    ):
        a = await create_student()
        b = await create_student()
        outsider = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value

        existing = await partnership_service.respond(request_id, outsider.id, RequestAction.ACCEPT)
        missing = await partnership_service.respond(uuid.uuid4(), outsider.id, RequestAction.ACCEPT)

        assert existing.error == missing.error == ErrorKind.REQUEST_NOT_ACTIONABLE
        assert existing.message == missing.message
        assert (await reload(PartnershipRequest, request_id)).status == RequestStatus.PENDING.value

    async def test_accept_cancels_other_pending_requests(
        self, partnership_service, create_student, insert, reload
    ):
        """Legacy data with two requests pending on the same target"""
        a = await create_student(partnership_status=PartnershipStatus.PENDING_SENT.value)
        c = await create_student(partnership_status=PartnershipStatus.PENDING_SENT.value)
        b = await create_student(partnership_status=PartnershipStatus.PENDING_RECEIVED.value)
        from_a = PartnershipRequest.open(a.id, b.id)
        from_c = PartnershipRequest.open(c.id, b.id)
        await insert(from_a, from_c)

        result = await partnership_service.respond(from_a.id, b.id, RequestAction.ACCEPT)

        assert result.ok
        assert (await reload(PartnershipRequest, from_c.id)).status == RequestStatus.CANCELLED.value
        assert (await reload(Student, c.id)).partnership_status == PartnershipStatus.NONE.value
        assert await partnership_service.list_requests(b.id) == []

    async def test_orphan_cleanup_keeps_counterpart_with_other_pending(
        self, partnership_service, create_student, insert, reload
    ):
        a = await create_student(partnership_status=PartnershipStatus.PENDING_SENT.value)
        b = await create_student(partnership_status=PartnershipStatus.PENDING_RECEIVED.value)
        c = await create_student(partnership_status=PartnershipStatus.PENDING_SENT.value)
        d = await create_student(partnership_status=PartnershipStatus.PENDING_RECEIVED.value)
        from_a = PartnershipRequest.open(a.id, b.id)
        c_to_b = PartnershipRequest.open(c.id, b.id)
        c_to_d = PartnershipRequest.open(c.id, d.id)
        await insert(from_a, c_to_b, c_to_d)

        assert (await partnership_service.respond(from_a.id, b.id, RequestAction.ACCEPT)).ok

        assert (await reload(PartnershipRequest, c_to_b.id)).status == RequestStatus.CANCELLED.value
        assert (await reload(PartnershipRequest, c_to_d.id)).status == RequestStatus.PENDING.value
        assert (await reload(Student, c.id)).partnership_status == PartnershipStatus.PENDING_SENT.value


# =============================================================================
# CANCEL
# =============================================================================
class TestCancel:
    """Test withdrawing requests"""

    async def test_requester_cancels(self, partnership_service, create_student, reload):
        a = await create_student()
        b = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value

        result = await partnership_service.cancel(request_id, a.id)

        assert result.ok
        assert (await reload(PartnershipRequest, request_id)).status == RequestStatus.CANCELLED.value
        assert (await reload(Student, a.id)).partnership_status == PartnershipStatus.NONE.value
        assert (await reload(Student, b.id)).partnership_status == PartnershipStatus.NONE.value

    async def test_target_cannot_cancel(self, partnership_service, create_student):
        a = await create_student()
        b = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value

        result = await partnership_service.cancel(request_id, b.id)

        assert result.error == ErrorKind.UNAUTHORIZED

    async def test_non_party_cancel_matches_missing_request(
        self, partnership_service, create_student
    ):
        a = await create_student()
        b = await create_student()
        outsider = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value

        existing = await partnership_service.cancel(request_id, outsider.id)
        missing = await partnership_service.cancel(uuid.uuid4(), outsider.id)

        assert existing.error == missing.error == ErrorKind.REQUEST_NOT_ACTIONABLE
        assert existing.message == missing.message

    async def test_accepted_request_cannot_be_cancelled(self, partnership_service, create_student):
        a = await create_student()
        b = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value
        assert (await partnership_service.respond(request_id, b.id, RequestAction.ACCEPT)).ok

        result = await partnership_service.cancel(request_id, a.id)

        assert result.error == ErrorKind.REQUEST_NOT_ACTIONABLE


# =============================================================================
# UNPAIR AND PARTNER LOOKUP
# =============================================================================
class TestUnpair:
    """Test dissolving partnerships"""

    async def test_unpair_resets_both(self, partnership_service, create_pair, reload):
        a, b = await create_pair()

        result = await partnership_service.unpair(a.id)

        assert result.ok
        for student_id in (a.id, b.id):
            student = await reload(Student, student_id)
            assert student.partner_id is None
            assert student.partnership_status == PartnershipStatus.NONE.value

    async def test_unpair_when_not_paired(self, partnership_service, create_student):
        a = await create_student()

        result = await partnership_service.unpair(a.id)

        assert result.error == ErrorKind.NOT_PAIRED

    async def test_unpair_leaves_partner_pointing_elsewhere_untouched(
        self, partnership_service, create_student, reload
    ):
        c = await create_student()
        b = await create_student(partner_id=c.id, partnership_status=PartnershipStatus.PAIRED.value)
        a = await create_student(partner_id=b.id, partnership_status=PartnershipStatus.PAIRED.value)

        assert (await partnership_service.unpair(a.id)).ok

        assert (await reload(Student, b.id)).partner_id == c.id

    async def test_current_partner_requires_symmetry(
        self, partnership_service, runner, create_student, create_pair
    ):
        a, b = await create_pair()
        b_like = await create_student()
        lopsided = await create_student(
            partner_id=b_like.id, partnership_status=PartnershipStatus.PAIRED.value
        )

        assert await runner.read(lambda store: partnership_service.current_partner_id(store, a.id)) == b.id
        assert await runner.read(lambda store: partnership_service.current_partner_id(store, b.id)) == a.id
        assert await runner.read(
            lambda store: partnership_service.current_partner_id(store, lopsided.id)
        ) is None


# =============================================================================
# QUERIES
# =============================================================================
class TestQueries:
    """Test listing requests and available students"""

    async def test_list_requests_by_direction(self, partnership_service, create_student):
        a = await create_student()
        b = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value

        outgoing = await partnership_service.list_requests(a.id, RequestDirection.OUTGOING)
        incoming = await partnership_service.list_requests(a.id, RequestDirection.INCOMING)
        for_target = await partnership_service.list_requests(b.id, RequestDirection.INCOMING)

        assert [r.id for r in outgoing] == [request_id]
        assert incoming == []
        assert [r.id for r in for_target] == [request_id]

    async def test_list_requests_status_filter(self, partnership_service, create_student):
        a = await create_student()
        b = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value
        assert (await partnership_service.cancel(request_id, a.id)).ok

        assert await partnership_service.list_requests(a.id) == []
        cancelled = await partnership_service.list_requests(a.id, status=RequestStatus.CANCELLED)
        everything = await partnership_service.list_requests(a.id, status=None)
        assert [r.id for r in cancelled] == [request_id]
        assert [r.id for r in everything] == [request_id]

    async def test_available_students_excludes_caller_and_busy(
        self, partnership_service, create_student, create_pair
    ):
        a = await create_student()
        free = await create_student()
        await create_pair()

        available = await partnership_service.list_available_students(a.id)

        assert [s.id for s in available] == [free.id]


# =============================================================================
# CONCURRENCY
# =============================================================================
class TestConcurrentTransitions:
    """Concurrent operations on the same students serialize"""

    async def test_two_requests_to_same_target(self, partnership_service, create_student, reload):
        a = await create_student()
        b = await create_student()
        c = await create_student()

        results = await asyncio.gather(
            partnership_service.send_request(a.id, b.id),
            partnership_service.send_request(c.id, b.id),
        )

        assert sum(r.ok for r in results) == 1
        loser = next(r for r in results if not r.ok)
        assert loser.error == ErrorKind.TARGET_UNAVAILABLE
        assert len(await partnership_service.list_requests(b.id, RequestDirection.INCOMING)) == 1

    async def test_accept_races_cancel(self, partnership_service, create_student, reload):
        a = await create_student()
        b = await create_student()
        request_id = (await partnership_service.send_request(a.id, b.id)).value

        accepted, cancelled = await asyncio.gather(
            partnership_service.respond(request_id, b.id, RequestAction.ACCEPT),
            partnership_service.cancel(request_id, a.id),
        )

        assert accepted.ok != cancelled.ok
        request = await reload(PartnershipRequest, request_id)
        a_after = await reload(Student, a.id)
        b_after = await reload(Student, b.id)
        if accepted.ok:
            assert cancelled.error == ErrorKind.REQUEST_NOT_ACTIONABLE
            assert request.status == RequestStatus.ACCEPTED.value
            assert a_after.partner_id == b.id and b_after.partner_id == a.id
        else:
            assert accepted.error == ErrorKind.REQUEST_NOT_ACTIONABLE
            assert request.status == RequestStatus.CANCELLED.value
            assert a_after.partner_id is None and b_after.partner_id is None

    async def test_pending_pair_key_blocks_duplicate_rows(
        self, create_student, insert
    ):
        a = await create_student()
        b = await create_student()
        await insert(PartnershipRequest.open(a.id, b.id))

        with pytest.raises(IntegrityError):
            await insert(PartnershipRequest.open(b.id, a.id))

        assert pair_key(a.id, b.id) == pair_key(b.id, a.id)
