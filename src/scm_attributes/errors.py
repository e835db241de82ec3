from __future__ import annotations


class ScmError(Exception):
    """Base class for every failure raised while deriving scm attributes."""


class GitCommandError(ScmError):
    pass


class RepositoryNotFound(ScmError):
    pass


class UnknownTargetBranch(ScmError):
    pass


class UnresolvableTargetRef(ScmError):
    pass


class NoHeadRef(ScmError):
    pass


class MissingCommit(ScmError):
    pass


class MissingHeadCommit(MissingCommit):
    pass


class MissingTargetCommit(MissingCommit):
    pass


class NoCommonAncestor(ScmError):
    pass


class HistoryWalkFailure(ScmError):
    pass


class MissingTree(ScmError):
    pass


class DiffComputationFailure(ScmError):
    pass
