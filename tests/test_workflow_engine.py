"""Tests for the suspendable workflow engine."""

import asyncio

import pytest
from pydantic import BaseModel

from kpiflow.errors import ExecutionError, UnknownRunError, ValidationError
from kpiflow.integrations.local import FileSystemRunStore
from kpiflow.workflows import (
    InMemoryRunStore,
    RunStatus,
    StepContext,
    WorkflowDefinition,
    WorkflowEngine,
    WorkflowStep,
)


class Number(BaseModel):
    value: int


class Decision(BaseModel):
    approve: bool
    bonus: int = 0


class Question(BaseModel):
    value: int
    message: str


class Outcome(BaseModel):
    value: int
    approved: bool


class AddOne(WorkflowStep):
    step_id = "add-one"
    input_schema = Number
    output_schema = Number

    async def execute(self, context: StepContext) -> Number:
        return Number(value=context.input.value + 1)


class Approve(WorkflowStep):
    step_id = "approve"
    input_schema = Number
    output_schema = Outcome
    resume_schema = Decision
    suspend_schema = Question

    async def execute(self, context: StepContext):
        if not context.is_resume:
            return context.suspend({"value": context.input.value, "message": "approve?"})
        if context.resume_data.bonus < 0:
            raise ValidationError("bonus must not be negative")
        return Outcome(
            value=context.input.value + context.resume_data.bonus,
            approved=context.resume_data.approve,
        )


class Boom(WorkflowStep):
    step_id = "boom"
    input_schema = Number
    output_schema = Number

    async def execute(self, context: StepContext):
        raise RuntimeError("kaboom")


class SuspendTwice(WorkflowStep):
    step_id = "twice"
    input_schema = Number
    output_schema = Number
    resume_schema = Decision

    async def execute(self, context: StepContext):
        context.suspend({"a": 1})
        return context.suspend({"a": 2})


class SuspendWithoutResume(WorkflowStep):
    step_id = "no-resume"
    input_schema = Number
    output_schema = Number

    async def execute(self, context: StepContext):
        return context.suspend({"a": 1})


def _approval_workflow():
    return WorkflowDefinition("approval", [AddOne(), Approve()])


class TestLifecycle:
    def test_start_suspends_then_resume_completes(self):
        async def run():
            engine = WorkflowEngine()
            handle = await engine.start(_approval_workflow(), {"value": 1})
            assert handle.status is RunStatus.SUSPENDED
            assert handle.step_id == "approve"
            assert handle.suspend_payload == {"value": 2, "message": "approve?"}
            assert handle.output is None

            done = await engine.resume(handle.run_id, {"approve": True, "bonus": 3})
            assert done.status is RunStatus.COMPLETED
            assert done.output == {"value": 5, "approved": True}
            assert done.suspend_payload is None

            stored = await engine.get_run(handle.run_id)
            assert stored.status is RunStatus.COMPLETED
            assert stored.step_index == 1

        asyncio.run(run())

    def test_run_without_suspension_completes_on_start(self):
        async def run():
            engine = WorkflowEngine()
            definition = WorkflowDefinition("count", [AddOne()])
            handle = await engine.start(definition, {"value": 41})
            assert handle.is_completed
            assert handle.output == {"value": 42}

        asyncio.run(run())

    def test_resume_twice_after_completion_fails_both_times(self):
        async def run():
            engine = WorkflowEngine()
            handle = await engine.start(_approval_workflow(), {"value": 1})
            await engine.resume(handle.run_id, {"approve": True})
            for _ in range(2):
                with pytest.raises(UnknownRunError):
                    await engine.resume(handle.run_id, {"approve": True})

        asyncio.run(run())

    def test_unknown_run(self):
        async def run():
            with pytest.raises(UnknownRunError, match="not found"):
                await WorkflowEngine().resume("missing", {"approve": True})

        asyncio.run(run())


class TestValidation:
    def test_invalid_initial_input(self):
        async def run():
            engine = WorkflowEngine()
            with pytest.raises(ValidationError) as info:
                await engine.start(_approval_workflow(), {"value": "not a number"})
            assert info.value.step_id == "add-one"
            assert await engine.store.list_runs() == []

        asyncio.run(run())

    def test_invalid_resume_input_keeps_run_suspended(self):
        async def run():
            engine = WorkflowEngine()
            handle = await engine.start(_approval_workflow(), {"value": 1})
            with pytest.raises(ValidationError):
                await engine.resume(handle.run_id, {"bonus": 1})
            stored = await engine.get_run(handle.run_id)
            assert stored.status is RunStatus.SUSPENDED

            done = await engine.resume(handle.run_id, {"approve": False})
            assert done.output == {"value": 2, "approved": False}

        asyncio.run(run())

    def test_step_rejecting_resume_input_restores_suspension(self):
        async def run():
            engine = WorkflowEngine()
            handle = await engine.start(_approval_workflow(), {"value": 1})
            with pytest.raises(ValidationError, match="bonus") as info:
                await engine.resume(handle.run_id, {"approve": True, "bonus": -1})
            assert info.value.step_id == "approve"

            stored = await engine.get_run(handle.run_id)
            assert stored.status is RunStatus.SUSPENDED
            assert stored.suspend_payload == handle.suspend_payload

        asyncio.run(run())


class TestFailures:
    def test_step_exception_fails_run_with_execution_error(self):
        async def run():
            engine = WorkflowEngine()
            definition = WorkflowDefinition("boom", [AddOne(), Boom()])
            with pytest.raises(ExecutionError) as info:
                await engine.start(definition, {"value": 1})
            assert info.value.step_id == "boom"
            assert isinstance(info.value.cause, RuntimeError)

            (failed,) = await engine.store.list_runs(status=RunStatus.FAILED)
            assert "kaboom" in failed.error
            with pytest.raises(UnknownRunError):
                await engine.resume(failed.run_id, {"approve": True})

        asyncio.run(run())

    def test_second_suspend_fails_step(self):
        async def run():
            definition = WorkflowDefinition("twice", [SuspendTwice()])
            with pytest.raises(ExecutionError, match="at most once"):
                await WorkflowEngine().start(definition, {"value": 1})

        asyncio.run(run())

    def test_suspend_without_resume_schema_fails_step(self):
        async def run():
            definition = WorkflowDefinition("no-resume", [SuspendWithoutResume()])
            with pytest.raises(ExecutionError, match="no resume schema"):
                await WorkflowEngine().start(definition, {"value": 1})

        asyncio.run(run())

    def test_suspend_payload_is_validated(self):
        class BadPayload(Approve):
            async def execute(self, context: StepContext):
                return context.suspend({"unexpected": True})

        async def run():
            definition = WorkflowDefinition("bad", [BadPayload()])
            with pytest.raises(ExecutionError, match="suspend payload"):
                await WorkflowEngine().start(definition, {"value": 1})

        asyncio.run(run())


class TestDefinition:
    def test_duplicate_step_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate step id"):
            WorkflowDefinition("dup", [AddOne(), AddOne()])

    def test_schema_chain_checked(self):
        with pytest.raises(ValueError, match="expects"):
            WorkflowDefinition("broken", [Approve(), AddOne()])

    def test_empty_definition_rejected(self):
        with pytest.raises(ValueError):
            WorkflowDefinition("empty", [])


class TestDurability:
    def test_resume_from_disk_after_restart(self, tmp_path):
        async def run():
            first = WorkflowEngine(FileSystemRunStore(tmp_path))
            handle = await first.start(_approval_workflow(), {"value": 10})
            assert handle.is_suspended
            assert (tmp_path / f"{handle.run_id}.json").exists()

            # A fresh engine shares nothing with the first one except the directory.
            second = WorkflowEngine(
                FileSystemRunStore(tmp_path), definitions=[_approval_workflow()]
            )
            done = await second.resume(handle.run_id, {"approve": True, "bonus": 1})
            assert done.output == {"value": 12, "approved": True}

            with pytest.raises(UnknownRunError):
                await first.resume(handle.run_id, {"approve": True})

        asyncio.run(run())

    def test_concurrent_resumes_claim_once(self):
        async def run():
            engine = WorkflowEngine(InMemoryRunStore())
            handle = await engine.start(_approval_workflow(), {"value": 1})
            results = await asyncio.gather(
                engine.resume(handle.run_id, {"approve": True}),
                engine.resume(handle.run_id, {"approve": True}),
                return_exceptions=True,
            )
            completed = [r for r in results if not isinstance(r, Exception)]
            failed = [r for r in results if isinstance(r, UnknownRunError)]
            assert len(completed) == 1
            assert len(failed) == 1

        asyncio.run(run())

    def test_unregistered_workflow_cannot_resume(self, tmp_path):
        async def run():
            first = WorkflowEngine(FileSystemRunStore(tmp_path))
            handle = await first.start(_approval_workflow(), {"value": 1})
            stranger = WorkflowEngine(FileSystemRunStore(tmp_path))
            with pytest.raises(UnknownRunError, match="not registered"):
                await stranger.resume(handle.run_id, {"approve": True})

        asyncio.run(run())

    def test_list_runs_filters_by_status(self, tmp_path):
        async def run():
            store = FileSystemRunStore(tmp_path)
            engine = WorkflowEngine(store)
            waiting = await engine.start(_approval_workflow(), {"value": 1})
            finished = await engine.start(_approval_workflow(), {"value": 2})
            await engine.resume(finished.run_id, {"approve": False})

            suspended = await store.list_runs(status=RunStatus.SUSPENDED)
            completed = await store.list_runs(status=RunStatus.COMPLETED)
            assert [r.run_id for r in suspended] == [waiting.run_id]
            assert [r.run_id for r in completed] == [finished.run_id]
            assert len(await store.list_runs()) == 2

        asyncio.run(run())

    def test_corrupt_run_file_is_reported(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        engine = WorkflowEngine(FileSystemRunStore(tmp_path))
        with pytest.raises(UnknownRunError, match="corrupt"):
            asyncio.run(engine.resume("broken", {"approve": True}))
