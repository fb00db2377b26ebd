# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# CREATED: 18 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the pipeline engine:
- Parameter values (tagged string/integer union)
- Processes, ports and parameters
- The workflow graph
- Execution records and run results
"""

from core.models.values import StringValue, IntegerValue, ParamValue, to_param_value
from core.models.process import OutputRef, InputPort, OutputPort, Parameter, Process
from core.models.workflow import Workflow
from core.models.record import ExecutionRecord, RunResult

__all__ = [
    # Values
    "StringValue",
    "IntegerValue",
    "ParamValue",
    "to_param_value",
    # Process
    "OutputRef",
    "InputPort",
    "OutputPort",
    "Parameter",
    "Process",
    # Workflow
    "Workflow",
    # Records
    "ExecutionRecord",
    "RunResult",
]
