"""Durable step execution."""

from s3_sync_workflow.infrastructure.steps.durable_step_executor import DurableStepExecutor

__all__ = ["DurableStepExecutor"]
