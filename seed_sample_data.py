from rest_api import GymAPI
from models import Prescription, SchemeType

PROGRAM_ID = "iron-legacy-v1"

PLANS = [
    ("plan-a", "Plan A (5-day)", 5),
    ("plan-b", "Plan B (4-day)", 4),
    ("plan-c", "Plan C (3-day)", 3),
]

DAYS = [
    (1, "Upper Body 1", "push/arms", 75),
    (2, "Back + Legs", "pull/legs", 70),
    (3, "Upper Body 2", "push/pull", 65),
    (4, "Lower Body", "legs", 60),
    (5, "Upper Body 3", "volume", 55),
]

# id, name, canonical name, category, movement pattern, equipment, calisthenics, notes
EXERCISES = [
    ("bench-close", "Bench Press (Close Grip)", "bench_press", "chest", "horizontal_push", ("barbell", "bench"), False, "Fully lock out each rep. Lead with elbows on descent."),
    ("bench-db", "Dumbbell Bench Press", "bench_press", "chest", "horizontal_push", ("dumbbell", "bench"), False, "Bring dumbbells all the way down at a 45 degree angle."),
    ("dip-assisted", "Dip (Assisted)", "dip", "chest", "horizontal_push", ("dip_machine",), True, "Forward lean. Pause at top and bottom."),
    ("pullup-bw", "Pull-Up (Bodyweight)", "pullup", "back", "vertical_pull", ("pullup_bar",), True, "Pull to the sternum. Don't lower to a dead hang."),
    ("pullup-neutral", "Pull-Up (Neutral Grip, Weighted)", "pullup", "back", "vertical_pull", ("pullup_bar", "weight_belt"), True, "Shoulder width grip. Keep the back arched."),
    ("chinup-bw", "Chin-Up (Bodyweight)", "chinup", "back", "vertical_pull", ("pullup_bar",), True, "Keep elbows tucked. Lower under tension."),
    ("cable-row", "Seated Cable Row", "cable_row", "back", "horizontal_pull", ("cable",), False, "Let the upper back flex at the start."),
    ("kelso-shrug", "Kelso Shrug", "kelso_shrug", "back", "horizontal_pull", ("cable", "barbell"), False, "Pull shoulder blades down and back, squeeze, then stretch."),
    ("lat-prayer", "Lat Prayer", "lat_prayer", "back", "vertical_pull", ("cable",), False, "Slow cadence. Stretch the lats at the top."),
    ("reverse-pec-deck", "Reverse Pec Deck", "rear_delt_fly", "back", "horizontal_pull", ("machine",), False, "Rear delts. Cluster sets allowed."),
    ("lateral-db", "Lateral Raise (Dumbbell)", "lateral_raise", "shoulders", "isolation_shoulders", ("dumbbell",), False, "Pause under tension at the top."),
    ("lateral-cable", "Lateral Raise (Cable)", "lateral_raise", "shoulders", "isolation_shoulders", ("cable",), False, "Keep tension at the bottom."),
    ("curl-barbell", "Barbell Curl", "bicep_curl", "biceps", "isolation_arms", ("barbell",), False, "Keep wrists neutral."),
    ("curl-hammer", "Hammer Curl", "hammer_curl", "biceps", "isolation_arms", ("dumbbell",), False, "Keep elbows in line with the body."),
    ("curl-spider", "Spider Curl", "spider_curl", "biceps", "isolation_arms", ("dumbbell", "barbell"), False, "Squeeze biased."),
    ("curl-preacher-db", "Preacher Curl (Dumbbell)", "preacher_curl", "biceps", "isolation_arms", ("dumbbell", "preacher_bench"), False, "Lower under tension."),
    ("curl-incline", "Incline Curl (Dumbbell)", "incline_curl", "biceps", "isolation_arms", ("dumbbell", "incline_bench"), False, "Flex triceps at the bottom."),
    ("pushdown-cable", "Tricep Pushdown (Cable)", "tricep_pushdown", "triceps", "isolation_arms", ("cable",), False, "Pause at lockout."),
    ("pushdown-incline", "Incline Tricep Pressdown", "tricep_pushdown", "triceps", "isolation_arms", ("cable", "incline_bench"), False, "Bench at 60-70 degrees."),
    ("extension-incline-db", "Incline Tricep Extension (Dumbbell)", "tricep_extension", "triceps", "isolation_arms", ("dumbbell", "incline_bench"), False, "Lead with elbows on descent."),
    ("squat-platz", "Platz Squat", "squat", "quads", "squat", ("barbell",), False, "Knees ahead of toes. One rest pause per set."),
    ("squat-platz-paused", "Platz Squat (Paused)", "squat", "quads", "squat", ("barbell",), False, "Pause at the bottom."),
    ("leg-extension", "Leg Extension", "leg_extension", "quads", "isolation_legs", ("machine",), False, "Control the eccentric."),
    ("cossack-squat", "Cossack Squat", "cossack_squat", "adductors", "squat", ("bodyweight", "dumbbell"), True, "Own the eccentrics."),
    ("curl-ham-lying", "Lying Hamstring Curl", "hamstring_curl", "hamstrings", "isolation_legs", ("machine",), False, "Pause under tension at the bottom."),
    ("curl-ham-seated", "Seated Hamstring Curl", "hamstring_curl", "hamstrings", "isolation_legs", ("machine",), False, "Lean forward to pre-stretch."),
    ("calf-standing", "Standing Calf Raise", "calf_raise", "calves", "isolation_legs", ("machine", "smith_machine"), False, "3-4 second pause at the bottom."),
    ("leg-raise", "Leg Raise", "leg_raise", "core", "core", ("dip_tower", "pullup_bar"), True, "Raise legs three quarters up."),
    ("oblique-raise", "Hanging Oblique Knee Raise", "oblique_raise", "core", "core", ("dip_tower", "pullup_bar"), True, "Flex into one side."),
    ("crunch-bw", "Crunch (Bodyweight)", "crunch", "core", "core", ("floor", "bench"), True, "Add weight at 20 reps."),
]

# day number, id suffix, position, block type, rest, exercises
BLOCKS = [
    (2, "row", 3, "superset", 150, ("cable-row", "kelso-shrug")),
    (5, "dip-chin", 1, "superset", 120, ("dip-assisted", "chinup-bw")),
    (5, "arms", 2, "superset", 120, ("curl-incline", "extension-incline-db")),
]

T = SchemeType.TOP_SET_BACKOFF_TRIPLE
D = SchemeType.DOUBLE_PROGRESSION
DD = SchemeType.DYNAMIC_DOUBLE_PROGRESSION

# day number, exercise, scheme, overrides
PRESCRIPTIONS = [
    (1, "bench-close", T, dict(sets_min=3, sets_max=4, reps_min=12, reps_max=12, rest_seconds=150, notes="1 top set + 2-3 backoff sets at -15%")),
    (1, "lateral-db", SchemeType.DROP_SETS, dict(sets_min=3, sets_max=4, reps_min=12, reps_max=15, rest_seconds=60, notes="1 top set + 2-3 drop sets")),
    (1, "curl-barbell", T, dict(sets_min=3, sets_max=4, reps_min=12, reps_max=12, notes="1 top set + 2-3 backoff sets")),
    (1, "curl-hammer", DD, dict(is_optional=True, rest_seconds=90, notes="Optional brachialis work")),
    (1, "pushdown-cable", T, dict(sets_min=3, sets_max=4, reps_min=15, reps_max=15, rest_seconds=90, current_phase_reps=15, notes="1 top set + 2-3 backoff sets")),
    (1, "pullup-bw", D, dict(sets_min=3, sets_max=3, reps_min=10, reps_max=15, notes="Arms fatigued = more back engagement")),
    (1, "leg-raise", D, dict(sets_min=3, sets_max=3, reps_min=12, reps_max=20, rest_seconds=75, notes="Optional cluster sets")),
    (2, "squat-platz", T, dict(sets_min=3, sets_max=3, reps_min=5, reps_max=12, rest_seconds=180, notes="Top set 5-8, then 8-10, then 10-12")),
    (2, "leg-extension", D, dict(is_optional=True, reps_min=10, reps_max=15, rest_seconds=75, notes="Substituted for Sissy Squats")),
    (2, "cable-row", D, dict(sets_min=2, sets_max=2, rest_seconds=150, notes="Superset with Kelso Shrugs", block="row")),
    (2, "kelso-shrug", D, dict(sets_min=2, sets_max=2, rest_seconds=150, notes="Immediately after rows", block="row")),
    (2, "lat-prayer", D, dict(is_optional=True, rest_seconds=90, notes="Extra lat volume if needed")),
    (2, "curl-ham-lying", DD, dict(reps_min=10, reps_max=15, notes="Add padding under hips for ROM")),
    (2, "calf-standing", SchemeType.REST_PAUSE, dict(sets_min=1, sets_max=1, reps_min=15, reps_max=30, rest_seconds=0, notes="One rest pause allowed")),
    (3, "bench-db", DD, dict(sets_min=3, sets_max=4, rest_seconds=150, notes="Match Day 1 scheme at 80% load")),
    (3, "pullup-neutral", DD, dict(sets_min=3, sets_max=3, rest_seconds=150, notes="Weighted if possible")),
    (3, "curl-spider", DD, dict(sets_min=3, sets_max=3, reps_min=10, reps_max=15, rest_seconds=105, notes="Squeeze biased curl")),
    (3, "curl-preacher-db", DD, dict(is_optional=True, reps_min=10, reps_max=15, notes="Skip if doing optional squats")),
    (3, "pushdown-incline", DD, dict(sets_min=3, sets_max=3, notes="Bench at 60-70 degrees")),
    (3, "oblique-raise", D, dict(sets_min=3, sets_max=3, reps_min=10, reps_max=15, rest_seconds=90, notes="Skip if doing added leg work")),
    (4, "squat-platz-paused", T, dict(sets_min=3, sets_max=3, reps_min=5, reps_max=12, rest_seconds=180, notes="Match Day 2 scheme at 80-85% load")),
    (4, "cossack-squat", D, dict(sets_min=3, sets_max=3, reps_min=10, reps_max=12, notes="Adductor focus")),
    (4, "leg-extension", D, dict(is_optional=True, reps_min=10, reps_max=15, rest_seconds=90, notes="Beat the books from Day 2")),
    (4, "lateral-cable", SchemeType.DROP_SETS, dict(is_optional=True, sets_min=3, sets_max=4, reps_min=12, reps_max=15, rest_seconds=60, notes="Beat the books from Day 1")),
    (4, "curl-ham-seated", DD, dict(notes="Optional cluster set")),
    (4, "calf-standing", SchemeType.REST_PAUSE, dict(sets_min=1, sets_max=1, reps_min=15, reps_max=30, rest_seconds=0, notes="Beat the books from Day 2")),
    (5, "dip-assisted", SchemeType.AMRAP, dict(sets_min=3, sets_max=3, reps_min=10, reps_max=20, notes="Add weight when hitting 20 reps", block="dip-chin")),
    (5, "chinup-bw", SchemeType.AMRAP, dict(sets_min=3, sets_max=3, reps_min=10, reps_max=20, notes="Superset with dips", block="dip-chin")),
    (5, "curl-incline", DD, dict(reps_min=10, reps_max=15, notes="Third biceps session of the week", block="arms")),
    (5, "extension-incline-db", DD, dict(reps_min=10, reps_max=15, notes="Superset with incline curls", block="arms")),
    (5, "reverse-pec-deck", DD, dict(is_optional=True, reps_min=10, reps_max=15, rest_seconds=90, notes="If rear delts need work")),
    (5, "crunch-bw", SchemeType.AMRAP, dict(sets_min=3, sets_max=3, reps_min=15, reps_max=30, rest_seconds=60, notes="Add weight at 20 reps")),
]


def _day_id(plan_id: str, day_number: int) -> str:
    return f"day-{plan_id[-1]}{day_number}"


def seed(db_path: str = "workout.db", yaml_path: str = "settings.yaml") -> bool:
    """Install the Iron Legacy program. Returns ``False`` if already present."""
    api = GymAPI(db_path, yaml_path)
    if api.programs.fetch_all_programs():
        print("Database already contains a program")
        return False

    api.programs.upsert(
        PROGRAM_ID,
        "Iron Legacy",
        "Strength and hypertrophy program built on top-set/backoff triple progression",
    )
    for eid, name, canonical, category, pattern, equipment, cali, notes in EXERCISES:
        api.exercise_catalog.upsert(
            eid, name, canonical, category, pattern, equipment, cali, notes
        )
    for plan_id, plan_name, days_per_week in PLANS:
        api.plans.upsert(plan_id, PROGRAM_ID, plan_name, days_per_week)
        for number, name, focus, duration in DAYS[:days_per_week]:
            api.days.upsert(_day_id(plan_id, number), plan_id, number, name, focus, duration)
        for number, suffix, position, btype, rest, members in BLOCKS:
            if number > days_per_week:
                continue
            day_id = _day_id(plan_id, number)
            api.blocks.upsert(
                f"block-{day_id[4:]}-{suffix}", day_id, position, btype, rest, members
            )
        positions: dict[int, int] = {}
        for number, exercise_id, scheme, overrides in PRESCRIPTIONS:
            if number > days_per_week:
                continue
            day_id = _day_id(plan_id, number)
            positions[number] = positions.get(number, 0) + 1
            options = dict(overrides)
            block = options.pop("block", None)
            api.prescriptions.upsert(
                Prescription(
                    id=f"de-{day_id}-{positions[number]}",
                    day_id=day_id,
                    exercise_id=exercise_id,
                    order=positions[number],
                    scheme=scheme,
                    block_id=f"block-{day_id[4:]}-{block}" if block else None,
                    **options,
                )
            )
    print("Seed data inserted")
    return True


if __name__ == "__main__":
    seed()
