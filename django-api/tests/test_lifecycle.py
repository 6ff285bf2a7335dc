"""Unit tests for the book lifecycle engine.

Run with: pytest django-api/tests/test_lifecycle.py -v
"""

import random
from dataclasses import replace
from datetime import time

import pytest

from clubs.domain import BookDraft, BookStatus, Vote
from clubs.domain.errors import (
    BookNotFoundError,
    InvalidInputError,
    InvalidTransitionError,
    MemberNotFoundError,
    UnauthorizedError,
)
from clubs.domain.lifecycle import (
    Accepted,
    BookLifecycle,
    LifecyclePolicy,
    Rejected,
    RejectionReason,
)
from conftest import FIXED_NOW


def _accepted(result):
    assert isinstance(result, Accepted), result
    return result.state


def _rejected(result, reason: RejectionReason):
    assert isinstance(result, Rejected), result
    assert result.reason is reason
    return result


def _veto_out(engine, state, members):
    """Three vetoes and one approval from the four eligible voters."""
    for voter, vote in [("m2", Vote.VETO), ("m3", Vote.VETO), ("m4", Vote.VETO), ("m5", Vote.APPROVE)]:
        state = _accepted(engine.vote_on_book(state, members, voter, vote))
    return state


@pytest.fixture
def with_selector(empty_state, members):
    return replace(empty_state, next_selector=members[0])


@pytest.fixture
def proposed(lifecycle, with_selector, members, draft):
    return _accepted(lifecycle.propose_book(with_selector, members, "m1", draft))


@pytest.fixture
def in_setup(lifecycle, proposed, members):
    state = proposed
    for voter in members[1:]:
        state = _accepted(lifecycle.vote_on_book(state, members, voter.id, Vote.APPROVE))
    assert state.current_book.status is BookStatus.SETUP
    return state


@pytest.fixture
def reading(lifecycle, in_setup, meeting):
    state = _accepted(lifecycle.update_book_setup(in_setup, "m1", in_setup.current_book.id, [meeting]))
    return _accepted(lifecycle.start_reading(state, "m1"))


class TestProposeBook:
    """Tests for idle -> proposed."""

    def test_selector_proposes_book(self, proposed):
        """The next selector's draft becomes the current proposed book."""
        book = proposed.current_book
        assert book.status is BookStatus.PROPOSED
        assert book.selected_by == "m1"
        assert book.title == "Piranesi"
        assert book.id == "id-1"
        assert book.votes == {} and book.meetings == () and book.discussion_topics == ()
        assert proposed.next_selector.id == "m1"

    def test_other_member_cannot_propose(self, lifecycle, with_selector, members, draft):
        """Only the next selector may propose."""
        result = lifecycle.propose_book(with_selector, members, "m2", draft)
        assert isinstance(_rejected(result, RejectionReason.NOT_NEXT_SELECTOR).to_error(), UnauthorizedError)

    def test_cannot_propose_without_selector(self, lifecycle, empty_state, members, draft):
        """Proposing needs a chosen selector first."""
        _rejected(
            lifecycle.propose_book(empty_state, members, "m1", draft),
            RejectionReason.NO_NEXT_SELECTOR,
        )

    def test_cannot_propose_over_active_book(self, lifecycle, proposed, members, draft):
        """A proposal cannot replace a book that is still being voted on."""
        _rejected(
            lifecycle.propose_book(proposed, members, "m1", draft),
            RejectionReason.BOOK_IN_PROGRESS,
        )

    def test_blank_title_rejected(self, lifecycle, with_selector, members):
        """Title and author are required."""
        result = lifecycle.propose_book(with_selector, members, "m1", BookDraft(title=" ", author="X"))
        assert isinstance(_rejected(result, RejectionReason.EMPTY_TEXT).to_error(), InvalidInputError)

    def test_vetoed_book_can_be_replaced(self, lifecycle, proposed, members):
        """After a veto the selector proposes again and a fresh book replaces the old one."""
        state = _veto_out(lifecycle, proposed, members)
        assert state.current_book.status is BookStatus.VETOED

        state = _accepted(
            lifecycle.propose_book(state, members, "m1", BookDraft(title="Circe", author="Madeline Miller"))
        )
        assert state.current_book.status is BookStatus.PROPOSED
        assert state.current_book.title == "Circe"
        assert state.current_book.votes == {}

    def test_single_member_club_approves_immediately(self, lifecycle, with_selector, members, draft):
        """With nobody else to vote, the proposal goes straight to setup."""
        state = _accepted(lifecycle.propose_book(with_selector, members[:1], "m1", draft))
        assert state.current_book.status is BookStatus.SETUP
        assert state.next_selector is None


class TestVoting:
    """Tests for vote accumulation and the tally threshold."""

    def test_partial_votes_keep_book_proposed(self, lifecycle, proposed, members):
        """The book stays proposed until every eligible member voted."""
        state = _accepted(lifecycle.vote_on_book(proposed, members, "m2", Vote.VETO))
        assert state.current_book.status is BookStatus.PROPOSED
        assert state.current_book.votes == {"m2": Vote.VETO}

    def test_even_split_approves(self, lifecycle, proposed, members):
        """4 eligible voters with 2 vetoes and 2 approvals move the book to setup."""
        state = proposed
        for voter, vote in [("m2", Vote.VETO), ("m3", Vote.VETO), ("m4", Vote.APPROVE), ("m5", Vote.APPROVE)]:
            state = _accepted(lifecycle.vote_on_book(state, members, voter, vote))
        assert state.current_book.status is BookStatus.SETUP
        assert state.next_selector is None

    @pytest.mark.parametrize(
        "club_size, vetoes, expected",
        [
            (4, 1, BookStatus.SETUP),
            (4, 2, BookStatus.VETOED),
            (5, 2, BookStatus.SETUP),
            (5, 3, BookStatus.VETOED),
            (3, 1, BookStatus.SETUP),
            (3, 2, BookStatus.VETOED),
        ],
    )
    def test_majority_veto_rejects(
        self, lifecycle, empty_state, members, draft, club_size, vetoes, expected
    ):
        """More than half of the eligible voters vetoing rejects the book."""
        club = members[:club_size]
        start = replace(empty_state, next_selector=club[0])
        proposed = _accepted(lifecycle.propose_book(start, club, club[0].id, draft))
        state = proposed
        voters = [member.id for member in club[1:]]
        for index, voter in enumerate(voters):
            vote = Vote.VETO if index < vetoes else Vote.APPROVE
            state = _accepted(lifecycle.vote_on_book(state, club, voter, vote))
        assert proposed.current_book.status is BookStatus.PROPOSED
        assert state.current_book.status is expected

    def test_veto_keeps_selector_by_default(self, lifecycle, proposed, members):
        """The vetoed proposer stays next selector under the default policy."""
        state = _veto_out(lifecycle, proposed, members)
        assert state.current_book.status is BookStatus.VETOED
        assert state.next_selector.id == "m1"

    def test_veto_clears_selector_when_reselecting(self, members, with_selector, draft):
        """With reselect_after_veto a veto requires a new selection."""
        engine = BookLifecycle(policy=LifecyclePolicy(reselect_after_veto=True))
        state = _accepted(engine.propose_book(with_selector, members, "m1", draft))
        state = _veto_out(engine, state, members)
        assert state.current_book.status is BookStatus.VETOED
        assert state.next_selector is None

    @pytest.mark.parametrize("club_size", [2, 3, 4, 5])
    def test_proposer_cannot_vote(self, lifecycle, empty_state, members, draft, club_size):
        """Self votes never register, whatever the club size."""
        club = members[:club_size]
        state = _accepted(
            lifecycle.propose_book(replace(empty_state, next_selector=club[0]), club, club[0].id, draft)
        )
        result = lifecycle.vote_on_book(state, club, club[0].id, Vote.APPROVE)
        _rejected(result, RejectionReason.SELF_VOTE)
        assert state.current_book.votes == {}

    def test_member_votes_once(self, lifecycle, proposed, members):
        """A second vote from the same member is rejected and the first one stands."""
        state = _accepted(lifecycle.vote_on_book(proposed, members, "m2", Vote.APPROVE))
        result = lifecycle.vote_on_book(state, members, "m2", Vote.VETO)
        assert isinstance(_rejected(result, RejectionReason.ALREADY_VOTED).to_error(), InvalidTransitionError)
        assert state.current_book.votes == {"m2": Vote.APPROVE}

    def test_outsider_cannot_vote(self, lifecycle, proposed, members):
        _rejected(
            lifecycle.vote_on_book(proposed, members, "stranger", Vote.APPROVE),
            RejectionReason.NOT_A_MEMBER,
        )

    def test_voting_closed_after_tally(self, lifecycle, in_setup, members):
        _rejected(
            lifecycle.vote_on_book(in_setup, members, "m2", Vote.VETO),
            RejectionReason.WRONG_STATUS,
        )

    def test_no_book_to_vote_on(self, lifecycle, empty_state, members):
        _rejected(
            lifecycle.vote_on_book(empty_state, members, "m2", Vote.VETO),
            RejectionReason.NO_CURRENT_BOOK,
        )


class TestSetupAndReading:
    """Tests for setup -> reading."""

    def test_setup_sorts_meetings_by_date(self, lifecycle, in_setup, meeting):
        """Meetings are stored in date order and the book stays in setup."""
        early = replace(meeting, date=meeting.date.replace(day=5), target_page=50)
        state = _accepted(
            lifecycle.update_book_setup(in_setup, "m1", in_setup.current_book.id, [meeting, early])
        )
        assert [m.target_page for m in state.current_book.meetings] == [50, 120]
        assert state.current_book.status is BookStatus.SETUP

    def test_only_selector_schedules(self, lifecycle, in_setup, meeting):
        _rejected(
            lifecycle.update_book_setup(in_setup, "m2", in_setup.current_book.id, [meeting]),
            RejectionReason.NOT_BOOK_SELECTOR,
        )

    def test_setup_requires_matching_book(self, lifecycle, in_setup, meeting):
        result = lifecycle.update_book_setup(in_setup, "m1", "other-book", [meeting])
        assert isinstance(_rejected(result, RejectionReason.BOOK_NOT_FOUND).to_error(), BookNotFoundError)

    def test_setup_closed_while_proposed(self, lifecycle, proposed, meeting):
        _rejected(
            lifecycle.update_book_setup(proposed, "m1", proposed.current_book.id, [meeting]),
            RejectionReason.WRONG_STATUS,
        )

    def test_meeting_ending_before_start_rejected(self, lifecycle, in_setup, meeting):
        backwards = replace(meeting, start_time=time(21, 0), end_time=time(19, 0))
        _rejected(
            lifecycle.update_book_setup(in_setup, "m1", in_setup.current_book.id, [backwards]),
            RejectionReason.INVALID_MEETING,
        )

    def test_start_reading_needs_a_meeting(self, lifecycle, in_setup):
        """start_reading is refused and nothing changes without meetings."""
        result = lifecycle.start_reading(in_setup, "m1")
        _rejected(result, RejectionReason.NO_MEETINGS)
        assert in_setup.current_book.status is BookStatus.SETUP

    def test_start_reading_with_a_meeting(self, reading):
        """With one meeting scheduled the book moves to reading, stamped with now."""
        assert reading.current_book.status is BookStatus.READING
        assert reading.current_book.start_date == FIXED_NOW

    def test_start_reading_only_from_setup(self, lifecycle, reading):
        _rejected(lifecycle.start_reading(reading, "m1"), RejectionReason.WRONG_STATUS)


class TestReadingPhase:
    """Tests for topics, discussions and progress while reading."""

    def test_add_topic(self, lifecycle, reading, members):
        state = _accepted(lifecycle.add_discussion_topic(reading, members, "m3", "  The House  "))
        topics = state.current_book.discussion_topics
        assert len(topics) == 1
        assert topics[0].text == "The House"
        assert topics[0].created_at == FIXED_NOW

    def test_topics_only_while_reading(self, lifecycle, in_setup, members):
        _rejected(
            lifecycle.add_discussion_topic(in_setup, members, "m3", "Too early"),
            RejectionReason.WRONG_STATUS,
        )

    def test_empty_topic_rejected(self, lifecycle, reading, members):
        _rejected(
            lifecycle.add_discussion_topic(reading, members, "m3", "   "),
            RejectionReason.EMPTY_TEXT,
        )

    def test_selector_clears_topics(self, lifecycle, reading, members):
        """Only the book's selector may clear all topics."""
        state = _accepted(lifecycle.add_discussion_topic(reading, members, "m3", "Statues"))
        _rejected(lifecycle.clear_discussion_topics(state, "m3"), RejectionReason.NOT_BOOK_SELECTOR)
        cleared = _accepted(lifecycle.clear_discussion_topics(state, "m1"))
        assert cleared.current_book.discussion_topics == ()

    def test_add_discussion_records_author(self, lifecycle, reading, members):
        state = _accepted(lifecycle.add_discussion(reading, members, "m2", "Loved chapter two"))
        entry = state.current_book.discussions[0]
        assert entry.user_id == "m2"
        assert entry.content == "Loved chapter two"
        assert entry.timestamp == FIXED_NOW

    def test_outsider_cannot_discuss(self, lifecycle, reading, members):
        _rejected(
            lifecycle.add_discussion(reading, members, "stranger", "Hi"),
            RejectionReason.NOT_A_MEMBER,
        )

    def test_progress_within_page_count(self, lifecycle, reading, members):
        state = _accepted(lifecycle.update_reading_progress(reading, members, "m2", 100))
        assert state.current_book.current_page == 100
        _rejected(
            lifecycle.update_reading_progress(reading, members, "m2", 273),
            RejectionReason.INVALID_PAGE,
        )


class TestStopReading:
    """Tests for reading -> completed."""

    def test_completed_book_moves_to_history(self, lifecycle, reading):
        """The book keeps its id, is completed, and leaves current_book empty."""
        book_id = reading.current_book.id
        state = _accepted(lifecycle.stop_reading(reading, "m1"))
        assert state.current_book is None
        assert len(state.book_history) == len(reading.book_history) + 1
        finished = state.book_history[-1]
        assert finished.id == book_id
        assert finished.status is BookStatus.COMPLETED
        assert finished.end_date == FIXED_NOW

    def test_only_reading_book_can_be_finished(self, lifecycle, in_setup):
        _rejected(lifecycle.stop_reading(in_setup, "m1"), RejectionReason.WRONG_STATUS)

    def test_only_selector_finishes(self, lifecycle, reading):
        _rejected(lifecycle.stop_reading(reading, "m2"), RejectionReason.NOT_BOOK_SELECTOR)


class TestRating:
    """Tests for rate_book."""

    def test_rating_twice_keeps_last(self, lifecycle, reading, members):
        """Rating again replaces the member's previous rating."""
        book_id = reading.current_book.id
        state = _accepted(lifecycle.rate_book(reading, members, book_id, "m2", 2))
        state = _accepted(lifecycle.rate_book(state, members, book_id, "m2", 5))
        assert state.current_book.ratings == {"m2": 5}

    def test_rate_book_in_history(self, lifecycle, reading, members):
        finished = _accepted(lifecycle.stop_reading(reading, "m1"))
        book_id = finished.book_history[0].id
        state = _accepted(lifecycle.rate_book(finished, members, book_id, "m3", 4))
        assert state.book_history[0].ratings == {"m3": 4}
        assert state.current_book is None

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, lifecycle, reading, members, rating):
        result = lifecycle.rate_book(reading, members, reading.current_book.id, "m2", rating)
        assert isinstance(_rejected(result, RejectionReason.INVALID_RATING).to_error(), InvalidInputError)

    def test_unknown_book(self, lifecycle, reading, members):
        _rejected(lifecycle.rate_book(reading, members, "nope", "m2", 3), RejectionReason.BOOK_NOT_FOUND)

    def test_outsider_cannot_rate(self, lifecycle, reading, members):
        _rejected(
            lifecycle.rate_book(reading, members, reading.current_book.id, "stranger", 3),
            RejectionReason.NOT_A_MEMBER,
        )

    def test_selector_rating_policy(self, reading, members):
        """selector_may_rate=False refuses the proposer's own rating."""
        strict = BookLifecycle(policy=LifecyclePolicy(selector_may_rate=False))
        book_id = reading.current_book.id
        _rejected(strict.rate_book(reading, members, book_id, "m1", 5), RejectionReason.SELECTOR_RATING)
        _accepted(BookLifecycle().rate_book(reading, members, book_id, "m1", 5))


class TestSelection:
    """Tests for the wheel and manual next-reader pick."""

    def test_spin_wheel_picks_a_member(self, empty_state, members):
        engine = BookLifecycle(rng=random.Random(7))
        state = _accepted(engine.spin_wheel(empty_state, members))
        assert state.next_selector in members

    def test_spin_wheel_needs_members(self, lifecycle, empty_state):
        _rejected(lifecycle.spin_wheel(empty_state, []), RejectionReason.NO_MEMBERS)

    def test_selection_waits_for_current_book(self, lifecycle, reading, members):
        _rejected(lifecycle.spin_wheel(reading, members), RejectionReason.BOOK_IN_PROGRESS)

    def test_selection_allowed_after_veto(self, lifecycle, proposed, members):
        state = _veto_out(lifecycle, proposed, members)
        state = _accepted(lifecycle.select_next_reader(state, members, "m3"))
        assert state.next_selector.id == "m3"

    def test_select_unknown_member(self, lifecycle, empty_state, members):
        result = lifecycle.select_next_reader(empty_state, members, "ghost")
        error = _rejected(result, RejectionReason.MEMBER_NOT_FOUND).to_error()
        assert isinstance(error, MemberNotFoundError)
        assert error.member_id == "ghost"

