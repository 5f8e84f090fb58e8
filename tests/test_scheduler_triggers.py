from datetime import datetime, timedelta, timezone

import pytest

# Helpers ----------------------------------------------------------------------


def _next_times(trigger, tzinfo, count=5, start=None):
    """
    Ask a trigger for the next `count` fire times, seeding the computation
    as if the previous fire happened at `start`. This avoids APScheduler's
    internal default anchoring to trigger.start_date (creation time).
    """
    from datetime import datetime, timedelta

    if start is None:
        start = datetime.now(tz=tzinfo)

    # Seed both prev and now at `start` so "next" means "strictly after start"
    prev = start
    now = start

    out = []
    for _ in range(count):
        nxt = trigger.get_next_fire_time(prev, now)
        if nxt is None:
            break
        out.append(nxt)
        prev = nxt
        # Move 'now' a tick forward to ensure strictly increasing times
        now = nxt + timedelta(microseconds=1)
    return out


# Tests ------------------------------------------------------------------------


def test_build_trigger_accepts_interval_minutes():
    from service.scheduler import _build_trigger

    trig = _build_trigger({"interval": {"minutes": 5}}, "UTC")
    # IntervalTrigger exposes 'interval' timedelta
    assert hasattr(trig, "interval")
    assert trig.interval.total_seconds() == 300

    # And it should actually schedule every 5 minutes
    ts = datetime(2099, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
    times = _next_times(trig, timezone.utc, count=3, start=ts)
    assert times[0] == ts + timedelta(minutes=5)
    assert times[1] == ts + timedelta(minutes=10)
    assert times[2] == ts + timedelta(minutes=15)


def test_build_trigger_accepts_cron_numeric_fields():
    from service.scheduler import _build_trigger

    trig = _build_trigger(
        {"cron": {"second": 0, "minute": 0, "hour": 3, "day_of_week": "mon-fri"}},
        "UTC",
    )
    assert hasattr(trig, "fields")

    # Use a real Monday: 2096-01-02 is Monday
    start = datetime(2096, 1, 2, 0, 0, 0, tzinfo=timezone.utc)  # Monday
    times = _next_times(trig, timezone.utc, count=3, start=start)
    assert times[0] == datetime(2096, 1, 2, 3, 0, 0, tzinfo=timezone.utc)  # Mon
    assert times[1] == datetime(2096, 1, 3, 3, 0, 0, tzinfo=timezone.utc)  # Tue
    assert times[2] == datetime(2096, 1, 4, 3, 0, 0, tzinfo=timezone.utc)  # Wed


def test_build_trigger_accepts_cron_string_lists():
    from service.scheduler import _build_trigger

    trig = _build_trigger(
        {"cron": {"second": 0, "minute": "0,45", "hour": "5-6", "day_of_week": "mon-sat"}},
        "UTC",
    )
    # Use a real Monday: 2099-01-05 is Monday
    start = datetime(2099, 1, 5, 4, 59, 0, tzinfo=timezone.utc)  # Monday 04:59
    times = _next_times(trig, timezone.utc, count=4, start=start)
    # Expect: 05:00, 05:45, 06:00, 06:45 (same day)
    assert times[0] == datetime(2099, 1, 5, 5, 0, 0, tzinfo=timezone.utc)
    assert times[1] == datetime(2099, 1, 5, 5, 45, 0, tzinfo=timezone.utc)
    assert times[2] == datetime(2099, 1, 5, 6, 0, 0, tzinfo=timezone.utc)
    assert times[3] == datetime(2099, 1, 5, 6, 45, 0, tzinfo=timezone.utc)


def test_build_trigger_accepts_date_iso_with_tz():
    from service.scheduler import _build_trigger

    trig = _build_trigger({"date": {"run_at": "2099-01-01T00:00:00Z"}}, "UTC")
    # DateTrigger has run_date
    assert hasattr(trig, "run_date")
    assert trig.run_date.year == 2099
    assert trig.run_date.tzinfo is not None


def test_build_trigger_accepts_date_epoch_seconds():
    from service.scheduler import _build_trigger

    ts = int(datetime(2099, 1, 1, 0, 0, 0, tzinfo=timezone.utc).timestamp())
    trig = _build_trigger({"date": {"run_at": ts}}, "UTC")
    assert hasattr(trig, "run_date")
    assert trig.run_date.year == 2099
    assert trig.run_date.tzinfo is not None


def test_build_trigger_date_iso_without_tz_uses_scheduler_tz():
    from service.scheduler import _build_trigger

    trig = _build_trigger({"date": {"run_at": "2099-01-01T00:00:00"}}, "America/Indiana/Indianapolis")
    assert trig.run_date.tzinfo is not None
    # We can't assert exact offset (DST varies), but tzinfo must be present
    assert "America" in str(trig.run_date.tzinfo) or "UTC" in str(trig.run_date.tzinfo)


def test_build_trigger_daily_time_single_time_is_exact():
    from service.scheduler import _build_trigger

    trig = _build_trigger({"daily_time": {"time": "03:15", "day_of_week": "mon-fri"}}, "UTC")

    # Use a real Monday: 2096-01-02 is Monday
    start = datetime(2096, 1, 2, 3, 14, 50, tzinfo=timezone.utc)  # Monday
    times = _next_times(trig, timezone.utc, count=3, start=start)
    assert times[0] == datetime(2096, 1, 2, 3, 15, 0, tzinfo=timezone.utc)  # Mon 03:15
    assert times[1] == datetime(2096, 1, 3, 3, 15, 0, tzinfo=timezone.utc)  # Tue 03:15
    assert times[2] == datetime(2096, 1, 4, 3, 15, 0, tzinfo=timezone.utc)  # Wed 03:15


def test_build_trigger_daily_time_multiple_times_no_cross_product():
    """
    Critical regression: multiple 'time' entries must not cross-product hours x minutes.
    Expect exact pairs: [05:00, 06:30, 08:00] rather than [05:00, 05:30, 06:00, 06:30, 08:00, 08:30, ...].
    """
    from apscheduler.triggers.combining import OrTrigger

    from service.scheduler import _build_trigger

    trig = _build_trigger(
        {"daily_time": {"time": ["05:00", "06:30", "08:00"], "day_of_week": "mon-sat"}},
        "America/Indiana/Indianapolis",
    )
    # Multiple times should produce OrTrigger combining exact tuples
    assert isinstance(trig, OrTrigger)

    # Pick a Monday in EST (no DST complications needed here)
    start = datetime(2097, 1, 6, 4, 59, 0, tzinfo=timezone.utc)  # Still fine; trigger has its own tz
    times = _next_times(trig, timezone.utc, count=4, start=start)

    # Extract HH:MM in the trigger's local tz for human clarity if desired
    # but asserting UTC instants is equally valid since triggers carry tzinfo.
    # We assert strictly increasing and that 06:00 is NOT present.
    hm = [(t.hour, t.minute) for t in times[:3]]
    assert hm == [(5, 0), (6, 30), (8, 0)], f"Unexpected sequence {hm}"

    # Also ensure no 06:00 or 08:30 sneaks in early
    assert (6, 0) not in hm and (8, 30) not in hm


def test_build_trigger_daily_time_supports_seconds_and_dedup():
    from service.scheduler import _build_trigger

    trig = _build_trigger(
        {"daily_time": {"time": ["12:00:10", "12:00:10", "12:00:20"], "day_of_week": "sun"}},
        "UTC",
    )
    # Use a real Sunday: 2099-01-04 is Sunday
    start = datetime(2099, 1, 4, 11, 59, 59, tzinfo=timezone.utc)  # Sunday
    times = _next_times(trig, timezone.utc, count=3, start=start)
    assert times[0] == datetime(2099, 1, 4, 12, 0, 10, tzinfo=timezone.utc)
    assert times[1] == datetime(2099, 1, 4, 12, 0, 20, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "payload",
    [
        {"date": {}},
        {"daily_time": {}},
        {"daily_time": {"time": "99:99"}},  # invalid time
        {"cron": "*/15 * *"},  # invalid: only 3 fields
        {"interval": {"minutes": -5}},  # invalid interval
        {},  # empty
    ],
)
def test_build_trigger_invalid_inputs_raise(payload):
    from service.scheduler import _build_trigger

    with pytest.raises(ValueError):
        _build_trigger(payload, "UTC")


# Scheduler assembly -----------------------------------------------------------


def test_build_registers_default_ingestion_jobs():
    from service import config_schema, scheduler

    sched = scheduler.build(config_schema.load_config())
    jobs = {job.id: job for job in sched.get_jobs()}
    assert set(jobs) == {"daily-scrape", "daily-sweep"}

    start = datetime(2099, 1, 5, 0, 0, 0, tzinfo=timezone.utc)
    assert jobs["daily-scrape"].trigger.get_next_fire_time(None, start) == datetime(2099, 1, 5, 6, 0, tzinfo=timezone.utc)
    assert jobs["daily-sweep"].trigger.get_next_fire_time(None, start) == datetime(2099, 1, 5, 6, 30, tzinfo=timezone.utc)
    assert jobs["daily-scrape"].max_instances == 1
    assert jobs["daily-scrape"].coalesce is True


def test_build_skips_jobs_with_bad_triggers():
    from service import scheduler

    cfg = {
        "timezone": "UTC",
        "jobs": [
            {"id": "ok", "module": "modules.job_tracker", "trigger": {"interval": {"hours": 6}}},
            {"id": "bad", "module": "modules.job_tracker", "trigger": {"cron": "* *"}},
            {"id": "no-trigger", "module": "modules.job_tracker"},
        ],
    }
    assert [job.id for job in scheduler.build(cfg).get_jobs()] == ["ok"]


def test_job_wrapper_runs_module_and_records_activity(monkeypatch):
    from service import scheduler

    calls = []

    def fake_run(module, kwargs=None, trigger_type="scheduled", job_context=None, timeout_sec=None):
        calls.append((module, kwargs, trigger_type, job_context["job_id"], timeout_sec))
        return {"success": True, "message": "done"}, "abc123"

    written = []
    monkeypatch.setattr(scheduler.runner, "run_module_once", fake_run)
    monkeypatch.setattr(scheduler, "write_activity_log", written.append)

    cfg = {
        "jobs": [{
            "id": "scrape-waymo",
            "module": "modules.job_tracker",
            "trigger": {"interval": {"hours": 1}},
            "kwargs": {"company": "waymo"},
            "timeout_sec": 120,
        }]
    }
    job = scheduler.build(cfg).get_jobs()[0]
    job.func()

    assert calls == [("modules.job_tracker", {"company": "waymo"}, "scheduled", "scrape-waymo", 120)]
    assert written[-1]["event"] == "job_run"
    assert written[-1]["fields"]["status"] == "ok"
    assert written[-1]["fields"]["run_id"] == "abc123"


def test_job_wrapper_survives_failures(monkeypatch):
    from service import scheduler

    def boom(*args, **kwargs):
        raise RuntimeError("store down")

    written = []
    monkeypatch.setattr(scheduler.runner, "run_module_once", boom)
    monkeypatch.setattr(scheduler, "write_activity_log", written.append)

    cfg = {"jobs": [{"id": "j", "module": "m", "trigger": {"interval": {"minutes": 5}}}]}
    scheduler.build(cfg).get_jobs()[0].func()
    assert written[-1]["fields"]["status"] == "error"


def test_controller_stop_and_job_ids(write_min_config):
    from service import scheduler

    ctl = scheduler.start()
    try:
        assert list(ctl.get_job_ids()) == ["scrape-never"]
    finally:
        ctl.stop()
    assert ctl.join(timeout=1)


def test_build_trigger_daily_time_shorthand_list():
    from service.scheduler import _build_trigger

    trig = _build_trigger({"daily_time": ["18:00", "06:00"]}, "UTC")
    start = datetime(2099, 1, 5, 0, 0, 0, tzinfo=timezone.utc)
    times = _next_times(trig, timezone.utc, count=2, start=start)
    assert [(t.hour, t.minute) for t in times] == [(6, 0), (18, 0)]
