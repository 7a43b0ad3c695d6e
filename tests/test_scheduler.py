import asyncio

from alerts import AlertOperator, AlertRule, ThresholdCondition
from core import ResourceDescriptor
from services import EvaluationScheduler
from conftest import make_result


def test_run_once_evaluates_every_watched_resource(engine, buffer, slow_results):
    scheduler = EvaluationScheduler(engine, interval_sec=60)
    for rid in ("a", "b", "c"):
        scheduler.watch(ResourceDescriptor(id=rid, name=rid.upper()))
        engine.create_default_alert_rules(rid)
    buffer.extend("a", slow_results)
    buffer.extend("b", [make_result(i, success=False, status=500) for i in range(10)])
    
    triggered = asyncio.run(scheduler.run_once())
    
    assert {e.rule_id for e in triggered["a"]} == {"a-response-time"}
    assert {e.rule_id for e in triggered["b"]} == {"b-error-rate", "b-availability"}
    assert {e.rule_id for e in triggered["c"]} == {"c-availability"}
    assert triggered["a"][0].resource_name == "A"
    assert scheduler.stats.passes == 3
    assert scheduler.stats.alerts == 4


def test_failing_pass_does_not_stop_tick(engine, buffer, slow_results, monkeypatch):
    scheduler = EvaluationScheduler(engine)
    scheduler.watch(ResourceDescriptor(id="ok"))
    scheduler.watch(ResourceDescriptor(id="bad"))
    engine.add_alert_rule("ok", AlertRule(
        id="slow", name="slow",
        condition=ThresholdCondition("response_time_p95", AlertOperator.GT, 1000),
    ))
    buffer.extend("ok", slow_results)
    
    original = engine.evaluate_alert_rules
    
    async def flaky(resource_id, resource=None):
        if resource_id == "bad":
            raise RuntimeError("store offline")
        return await original(resource_id, resource)
    
    monkeypatch.setattr(engine, "evaluate_alert_rules", flaky)
    
    triggered = asyncio.run(scheduler.run_once())
    assert len(triggered["ok"]) == 1
    assert "bad" not in triggered
    assert scheduler.stats.errors == 1


def test_start_and_stop(engine):
    scheduler = EvaluationScheduler(engine, interval_sec=0.01)
    scheduler.watch(ResourceDescriptor(id="a"))
    
    async def scenario():
        assert scheduler.start()["status"] == "started"
        assert scheduler.start()["status"] == "already_running"
        await asyncio.sleep(0.05)
        return await scheduler.stop()
    
    result = asyncio.run(scenario())
    assert result["status"] == "stopped"
    assert result["ticks"] >= 1
    assert scheduler.is_running is False


def test_watch_registry(engine):
    scheduler = EvaluationScheduler(engine)
    scheduler.watch(ResourceDescriptor(id="a", endpoints=["/x"]))
    assert scheduler.get_resource("a").endpoints == ["/x"]
    assert scheduler.unwatch("a") is True
    assert scheduler.unwatch("a") is False
    assert scheduler.resources() == []
