"""
Build system components for gobin.

This module provides the cross-compilation implementation including:
- Go compiler invocation with GOOS/GOARCH overrides
- Output directory management
- Build matrix orchestration
"""

from .build_utils import clean_dir, print_elapsed, safe_rmtree
from .compiler import CompileResult, CompilerError, GoCompiler
from .orchestrator import (
    BuildJob,
    BuildOrchestrator,
    BuildOrchestratorError,
    BuildResult,
    MatrixBuildResult,
    build_binary,
)

__all__ = [
    'BuildJob',
    'BuildOrchestrator',
    'BuildOrchestratorError',
    'BuildResult',
    'CompileResult',
    'CompilerError',
    'GoCompiler',
    'MatrixBuildResult',
    'build_binary',
    'clean_dir',
    'print_elapsed',
    'safe_rmtree',
]
