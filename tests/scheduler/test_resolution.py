"""Tests for ConflictResolutionEngine."""

import pytest

from section_scheduler.scheduler.models import (
    ConflictType,
    Exam,
    ExamSlotChange,
    ExamType,
    FacultyAvailability,
    GeneratedSchedule,
    InstructorChange,
    ManualResolution,
    ResolutionMode,
    RoomChange,
    Section,
    StudentContext,
    TimeSlot,
    TimeSlotChange,
)
from section_scheduler.scheduler.resolution import (
    ConflictResolutionEngine,
    apply_action,
    resolve,
)

SUNDAY_8 = TimeSlot.parse("sunday", "08:00", "09:30")
SUNDAY_9 = TimeSlot.parse("sunday", "09:00", "10:30")
SUNDAY_930 = TimeSlot.parse("sunday", "09:30", "11:00")
SUNDAY_MORNING = TimeSlot.parse("sunday", "08:00", "11:00")
MONDAY_8 = TimeSlot.parse("monday", "08:00", "09:30")
TUESDAY_8 = TimeSlot.parse("tuesday", "08:00", "09:30")
WEDNESDAY_8 = TimeSlot.parse("wednesday", "08:00", "09:30")


def make_section(section_id, course_code, slots, instructor=None, room=None, enrolled=20):
    return Section(section_id, course_code, 30, instructor, room, list(slots), enrolled)


@pytest.fixture
def catalog(sample_courses):
    return {c.code: c for c in sample_courses}


@pytest.fixture
def engine(sample_rooms, sample_faculty, catalog):
    return ConflictResolutionEngine(sample_rooms, sample_faculty, catalog)


@pytest.fixture
def room_clash():
    """Two sections of different levels booked into A101 at once."""
    return [
        make_section("CS301-1", "CS301", [SUNDAY_8], "F03", "A101"),
        make_section("CS401-1", "CS401", [SUNDAY_9], "F01", "A101"),
    ]


@pytest.fixture
def student_overlap():
    """A level-2 and a level-4 section held by one student at the same time."""
    return [
        make_section("CS201-1", "CS201", [SUNDAY_MORNING]),
        make_section("CS401-1", "CS401", [SUNDAY_8]),
    ]


@pytest.fixture
def student():
    return StudentContext("S1", 2, section_ids=["CS201-1", "CS401-1"])


def conflict_of(engine, sections, conflict_type, exams=None, student=None):
    conflicts = engine.check(sections, exams or [], student)
    return next(c for c in conflicts if c.type == conflict_type)


class TestSuggestions:
    """Tests for ranked alternatives."""

    def test_alternative_rooms_exclude_current_and_small(self, engine):
        section = make_section("CS301-1", "CS301", [SUNDAY_8], room="A101", enrolled=40)
        rooms = engine.suggest_alternative_rooms(section, set())
        assert [r.room_id for r in rooms] == ["B201"]
        for room in rooms:
            assert room.room_id != "A101"
            assert room.capacity >= 40

    def test_alternative_rooms_exclude_occupied(self, engine):
        section = make_section("CS301-1", "CS301", [SUNDAY_8], room="A101", enrolled=40)
        assert engine.suggest_alternative_rooms(section, {"B201"}) == []

    def test_alternative_rooms_least_waste_first(self, engine):
        section = make_section("CS301-1", "CS301", [SUNDAY_8], room="A101")
        rooms = engine.suggest_alternative_rooms(section, set(), required_capacity=25)
        assert [r.room_id for r in rooms] == ["C301", "A102", "B201"]
        assert rooms[0].score == 100.0

    def test_alternative_time_slots(self, engine):
        section = make_section("CS301-1", "CS301", [SUNDAY_8])
        ranked = engine.suggest_alternative_time_slots(section, [SUNDAY_930])
        assert len(ranked) == 5
        assert ranked[0].slot == MONDAY_8
        assert ranked[0].score == 95.0
        for candidate in ranked:
            assert not candidate.slot.overlaps(SUNDAY_930)
            assert candidate.slot != SUNDAY_8

    def test_alternative_time_slots_within_windows(self, engine):
        section = make_section("CS301-1", "CS301", [SUNDAY_8])
        window = TimeSlot.parse("tuesday", "08:00", "12:00")
        ranked = engine.suggest_alternative_time_slots(section, [], allowed_windows=[window])
        assert ranked
        assert all(window.contains(r.slot) for r in ranked)

    def test_zero_limit(self, engine):
        section = make_section("CS301-1", "CS301", [SUNDAY_8], room="A101")
        assert engine.suggest_alternative_time_slots(section, [], limit=0) == []
        assert engine.suggest_alternative_rooms(section, set(), limit=0) == []


class TestAutoResolve:
    """Tests for automatic resolution."""

    def test_room_conflict(self, engine, room_clash):
        conflict = conflict_of(engine, room_clash, ConflictType.ROOM)
        result = engine.auto_resolve_conflict(conflict, room_clash)
        assert result.success

        sections, exams = room_clash, []
        for action in result.actions:
            sections, exams = apply_action(sections, exams, action)
        assert conflict.id not in {c.id for c in engine.check(sections, exams)}

    def test_options_never_worsen_schedule(self, engine):
        sections = [
            make_section("CS301-1", "CS301", [SUNDAY_8], "F03", "A101"),
            make_section("CS302-1", "CS302", [SUNDAY_9], "F02", "A101"),
        ]
        baseline = {c.id for c in engine.check(sections, [])}
        assert len(baseline) == 2

        for conflict in engine.check(sections, []):
            options = engine.generate_resolution_options(conflict, sections)
            assert options
            assert options == sorted(options, key=lambda o: (-o.score, o.description))
            for option in options:
                new_sections, new_exams = apply_action(sections, [], option.action)
                after = {c.id for c in engine.check(new_sections, new_exams)}
                assert conflict.id not in after
                assert after <= baseline

    def test_cleared_count_covers_existing_conflicts_only(self, engine):
        # Same instructor and room: one move clears both conflicts
        sections = [
            make_section("CS301-1", "CS301", [SUNDAY_8], "F01", "A101"),
            make_section("CS401-1", "CS401", [SUNDAY_9], "F01", "A101"),
        ]
        conflict = conflict_of(engine, sections, ConflictType.ROOM)
        options = engine.generate_resolution_options(conflict, sections)

        moves = [o for o in options if isinstance(o.action, TimeSlotChange)]
        assert moves
        assert all("also clears 1 other conflict(s)" in o.impact for o in moves)
        assert not any("clears -" in o.impact for o in options)

    def test_student_overlap_across_levels(self, engine, student_overlap, student):
        conflict = conflict_of(
            engine, student_overlap, ConflictType.STUDENT_OVERLAP, student=student
        )
        assert conflict.id == "student-S1-CS201-1-CS401-1"

        result = engine.auto_resolve_conflict(conflict, student_overlap, student=student)
        assert result.success
        assert "also clears" not in result.message

        new_sections, _ = apply_action(student_overlap, [], result.action)
        after = engine.check(new_sections, [], student)
        assert conflict.id not in {c.id for c in after}

    def test_student_options_keep_the_other_section_free(
        self, engine, student_overlap, student
    ):
        conflict = conflict_of(
            engine, student_overlap, ConflictType.STUDENT_OVERLAP, student=student
        )
        options = engine.generate_resolution_options(conflict, student_overlap, student=student)
        assert options
        for option in options:
            new_sections, _ = apply_action(student_overlap, [], option.action)
            moved = next(s for s in new_sections if s.id == option.action.section_id)
            other = next(s for s in new_sections if s.id != moved.id)
            assert not any(a.overlaps(b) for a in moved.time_slots for b in other.time_slots)

    def test_student_conflict_without_context(self, engine, student_overlap, student):
        conflict = conflict_of(
            engine, student_overlap, ConflictType.STUDENT_OVERLAP, student=student
        )
        assert engine.generate_resolution_options(conflict, student_overlap) == []

        result = engine.auto_resolve_conflict(conflict, student_overlap)
        assert not result.success
        assert "student's context" in result.message
        assert result.actions == []

    def test_capacity_needs_new_section(self, engine):
        sections = [make_section("CS301-1", "CS301", [SUNDAY_8], "F03", "A101", enrolled=35)]
        conflict = conflict_of(engine, sections, ConflictType.CAPACITY)
        result = engine.auto_resolve_conflict(conflict, sections)
        assert not result.success
        assert "additional section" in result.message
        assert result.actions == []

    def test_undersized_room(self, engine):
        sections = [make_section("CS301-1", "CS301", [SUNDAY_8], "F03", "C301", enrolled=28)]
        conflict = conflict_of(engine, sections, ConflictType.CAPACITY)
        result = engine.auto_resolve_conflict(conflict, sections)
        assert result.success
        assert result.action == RoomChange("CS301-1", "A102", 30)

    def test_overload_moves_section_to_other_instructor(self, catalog, sample_rooms):
        days = ("sunday", "monday", "tuesday", "wednesday")
        week = [TimeSlot.parse(day, "08:00", "18:00") for day in days]
        faculty = [
            FacultyAvailability("F01", "Dr. A", week, 3.0, ["CS301", "CS302"]),
            FacultyAvailability("F02", "Dr. B", week, 12.0, ["CS302"]),
        ]
        engine = ConflictResolutionEngine(sample_rooms, faculty, catalog)
        sections = [
            make_section("CS301-1", "CS301", [SUNDAY_8, TUESDAY_8], "F01", "A101"),
            make_section("CS302-1", "CS302", [MONDAY_8, WEDNESDAY_8], "F01", "A102"),
        ]
        conflict = conflict_of(engine, sections, ConflictType.FACULTY)
        result = engine.auto_resolve_conflict(conflict, sections)
        assert result.success
        assert result.action == InstructorChange("CS302-1", "F02")

    def test_exam_conflict(self, engine):
        slot = TimeSlot.parse("monday", "08:00", "10:00")
        exams = [Exam("CS301", ExamType.MIDTERM, slot), Exam("CS302", ExamType.MIDTERM, slot)]
        conflict = conflict_of(engine, [], ConflictType.EXAM, exams)
        result = engine.auto_resolve_conflict(conflict, [], exams)
        assert result.success
        assert isinstance(result.action, ExamSlotChange)
        _, new_exams = apply_action([], exams, result.action)
        assert conflict.id not in {c.id for c in engine.check([], new_exams)}

    def test_fixed_sections_never_moved(self, engine):
        sections = [
            make_section("MATH301-1", "MATH301", [SUNDAY_8], "M01", "B201"),
            make_section("CS301-1", "CS301", [SUNDAY_9], "F03", "A101"),
        ]
        conflict = conflict_of(engine, sections, ConflictType.TIME)
        for option in engine.generate_resolution_options(conflict, sections):
            assert option.action.section_id == "CS301-1"


class TestManualResolve:
    """Tests for manual resolution."""

    def test_valid_room_change(self, engine, room_clash):
        conflict = conflict_of(engine, room_clash, ConflictType.ROOM)
        result = engine.resolve(
            conflict,
            room_clash,
            ResolutionMode.MANUAL,
            ManualResolution("CS401-1", new_room_id="B201"),
        )
        assert result.success
        assert result.actions == [RoomChange("CS401-1", "B201", 60)]

    def test_change_introducing_conflicts_rejected(self, engine, room_clash):
        sections = room_clash + [make_section("CS303-1", "CS303", [SUNDAY_9], "F02", "B201")]
        conflict = conflict_of(engine, sections, ConflictType.ROOM)
        result = engine.manual_resolve(
            conflict, sections, ManualResolution("CS401-1", new_room_id="B201")
        )
        assert not result.success
        assert "room-B201" in result.message

    def test_change_not_clearing_conflict_rejected(self, engine, room_clash):
        conflict = conflict_of(engine, room_clash, ConflictType.ROOM)
        result = engine.manual_resolve(
            conflict, room_clash, ManualResolution("CS401-1", new_instructor_id="F01")
        )
        assert not result.success

    def test_slot_change(self, engine, room_clash):
        conflict = conflict_of(engine, room_clash, ConflictType.ROOM)
        result = engine.manual_resolve(
            conflict,
            room_clash,
            ManualResolution("CS401-1", new_slot=SUNDAY_930, replaces=SUNDAY_9),
        )
        assert result.success
        assert result.action == TimeSlotChange("CS401-1", SUNDAY_930, SUNDAY_9)

    def test_rejections(self, engine, room_clash):
        conflict = conflict_of(engine, room_clash, ConflictType.ROOM)
        assert not engine.manual_resolve(
            conflict, room_clash, ManualResolution("NOPE", new_room_id="B201")
        ).success
        assert not engine.manual_resolve(
            conflict, room_clash, ManualResolution("CS401-1", new_room_id="Z99")
        ).success
        assert not engine.manual_resolve(
            conflict, room_clash, ManualResolution("CS401-1", new_instructor_id="F02")
        ).success
        assert not engine.manual_resolve(
            conflict, room_clash, ManualResolution("CS401-1")
        ).success
        assert not engine.resolve(conflict, room_clash, "manual").success

    def test_student_overlap_checked_with_context(self, engine, student_overlap, student):
        conflict = conflict_of(
            engine, student_overlap, ConflictType.STUDENT_OVERLAP, student=student
        )
        # Still inside the level-2 section's Sunday morning
        still_overlapping = ManualResolution("CS401-1", new_slot=SUNDAY_930, replaces=SUNDAY_8)
        result = engine.manual_resolve(
            conflict, student_overlap, still_overlapping, student=student
        )
        assert not result.success
        assert "persists" in result.message

        result = engine.resolve(
            conflict,
            student_overlap,
            ResolutionMode.MANUAL,
            ManualResolution("CS401-1", new_slot=MONDAY_8, replaces=SUNDAY_8),
            student=student,
        )
        assert result.success

    def test_student_conflict_needs_context(self, engine, student_overlap, student):
        conflict = conflict_of(
            engine, student_overlap, ConflictType.STUDENT_OVERLAP, student=student
        )
        result = engine.manual_resolve(
            conflict,
            student_overlap,
            ManualResolution("CS401-1", new_slot=SUNDAY_930, replaces=SUNDAY_8),
        )
        assert not result.success
        assert "student's context" in result.message

    def test_fixed_section_cannot_move(self, engine):
        sections = [
            make_section("MATH301-1", "MATH301", [SUNDAY_8], "M01", "B201"),
            make_section("CS301-1", "CS301", [SUNDAY_9], "F03", "A101"),
        ]
        conflict = conflict_of(engine, sections, ConflictType.TIME)
        result = engine.manual_resolve(
            conflict, sections, ManualResolution("MATH301-1", new_slot=MONDAY_8)
        )
        assert not result.success
        assert "another department" in result.message


class TestApply:
    """Tests for applying actions."""

    def test_apply_action_leaves_input_untouched(self, room_clash):
        new_sections, _ = apply_action(room_clash, [], RoomChange("CS401-1", "B201", 60))
        assert room_clash[1].room_id == "A101"
        assert new_sections[1].room_id == "B201"

    def test_apply_action_unknown_targets(self, room_clash):
        with pytest.raises(ValueError):
            apply_action(room_clash, [], RoomChange("NOPE", "B201"))
        with pytest.raises(ValueError):
            apply_action(room_clash, [], TimeSlotChange("CS401-1", MONDAY_8, replaces=TUESDAY_8))

    def test_apply_to_schedule(self, engine, room_clash):
        schedule = GeneratedSchedule(
            semester="2025-fall",
            levels=[3, 4],
            sections=room_clash,
            conflicts=engine.check(room_clash, []),
        )
        original_id = schedule.id
        conflict = schedule.conflicts[0]
        result = engine.auto_resolve_conflict(conflict, schedule.sections)

        remaining = engine.apply_to_schedule(schedule, conflict, result.actions)

        assert schedule.get_conflict(conflict.id).resolved
        assert [c for c in remaining if not c.resolved] == []
        assert schedule.id != original_id

    def test_apply_keeps_stored_student_conflicts(self, engine, room_clash):
        student = StudentContext(
            "S2", 3, section_ids=["CS301-1", "CS401-1"], completed_courses=["CS201"]
        )
        schedule = GeneratedSchedule(
            semester="2025-fall",
            levels=[3, 4],
            sections=room_clash,
            conflicts=engine.check(room_clash, [], student),
        )
        overlap = next(c for c in schedule.conflicts if c.type == ConflictType.STUDENT_OVERLAP)
        room = next(c for c in schedule.conflicts if c.type == ConflictType.ROOM)

        remaining = engine.apply_to_schedule(
            schedule, room, [RoomChange("CS401-1", "B201", 60)]
        )

        assert schedule.get_conflict(room.id).resolved
        assert overlap.id in {c.id for c in remaining if not c.resolved}

    def test_apply_rechecks_given_student(self, engine, room_clash):
        student = StudentContext(
            "S2", 3, section_ids=["CS301-1", "CS401-1"], completed_courses=["CS201"]
        )
        schedule = GeneratedSchedule(
            semester="2025-fall",
            levels=[3, 4],
            sections=room_clash,
            conflicts=engine.check(room_clash, [], student),
        )
        overlap = next(c for c in schedule.conflicts if c.type == ConflictType.STUDENT_OVERLAP)
        room = next(c for c in schedule.conflicts if c.type == ConflictType.ROOM)

        remaining = engine.apply_to_schedule(
            schedule, room, [TimeSlotChange("CS401-1", MONDAY_8, SUNDAY_9)], student
        )

        assert schedule.get_conflict(room.id).resolved
        assert overlap.id not in {c.id for c in remaining}

    def test_attach_suggestions(self, engine):
        sections = [
            make_section("CS301-1", "CS301", [SUNDAY_8], "F03", "A101", enrolled=35),
            make_section("CS302-1", "CS302", [SUNDAY_9], "F02", "A101"),
        ]
        conflicts = engine.attach_suggestions(engine.check(sections, []), sections)
        assert all(c.resolution_suggestions for c in conflicts)
        capacity = next(c for c in conflicts if c.type == ConflictType.CAPACITY)
        assert "additional section" in capacity.resolution_suggestions[0]

    def test_module_resolve(self, sample_rooms, sample_faculty, catalog, room_clash):
        engine = ConflictResolutionEngine(sample_rooms, sample_faculty, catalog)
        conflict = conflict_of(engine, room_clash, ConflictType.ROOM)
        result = resolve(
            conflict,
            room_clash,
            rooms=sample_rooms,
            faculty=sample_faculty,
            courses=catalog,
        )
        assert result.success
