"""
Policy combination.
"""

from typing import Sequence

from ..errors import InvalidArgumentError
from .policy import Policy


class PolicyCombination:
    """Chains policies so that each one wraps the next."""

    @staticmethod
    def combine(policies: Sequence[Policy]) -> Policy:
        """
        Wrap ``policies[0]`` around ``policies[1]`` around ... ``policies[-1]``.

        Wrapping starts from the innermost pair. Returns the outermost policy,
        which is the entry point of the chain. The whole chain is checked
        first, so a rejected combination leaves every policy unchanged.
        """
        policies = list(policies)
        if len(policies) < 2:
            raise InvalidArgumentError("at least two policies are required to combine", 'policies', len(policies))

        for policy in policies:
            if not isinstance(policy, Policy):
                raise InvalidArgumentError("policy must be a Policy instance", 'policy', policy)

        if len(set(map(id, policies))) != len(policies):
            raise InvalidArgumentError("a policy can appear only once in a combination", 'policies',
                                       [policy.name for policy in policies])

        # The innermost policy keeps its own wrapped chain
        node = policies[-1].wrapped_policy
        while node is not None:
            if any(node is policy for policy in policies):
                raise InvalidArgumentError("combining would create a cycle", 'policies', node.name)
            node = node.wrapped_policy

        for policy in policies[:-1]:
            policy._check_modifiable()

        for outer, inner in zip(reversed(policies[:-1]), reversed(policies[1:])):
            outer.wrap(inner)

        return policies[0]
