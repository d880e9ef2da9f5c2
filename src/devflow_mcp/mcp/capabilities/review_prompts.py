"""Code review prompt templates."""

from typing import Dict

from devflow_mcp.mcp.core import CapabilityRegistry, Prompt, PromptArgument, RenderedPrompt, PromptMessage

PR_REVIEW_PROMPT = "pr-review-template"

_PR_REVIEW_TEMPLATE = """\
You are conducting a comprehensive code review for Pull Request #{pr_number}.

## Review Checklist

### 1. Code Quality
- [ ] Code is clean, readable, and well-structured
- [ ] Naming conventions are consistent and descriptive
- [ ] No commented-out code or debug statements
- [ ] No unnecessary duplication

### 2. Functionality
- [ ] Changes match the PR description and requirements
- [ ] Edge cases are handled
- [ ] Error handling is informative
- [ ] No breaking changes without a migration path

### 3. Testing
- [ ] Unit tests added or updated for new functionality
- [ ] Integration tests cover critical paths
- [ ] All tests pass

### 4. Security
- [ ] No secrets committed (API keys, passwords)
- [ ] Input validation is thorough
- [ ] Dependencies are up to date

### 5. Performance
- [ ] No obvious bottlenecks
- [ ] Queries and I/O are bounded

### 6. Documentation
- [ ] Public APIs are documented
- [ ] README and CHANGELOG updated where needed

### 7. Style & Conventions
- [ ] Linter and formatter pass
- [ ] Commit messages and branch name follow conventions

## Focus Area: {focus}
{focus_note}
## Review Process

1. Read the PR description
2. Check CI status
3. Review the diff file by file
4. Test the branch locally
5. Give specific, constructive feedback using the checklist

## Feedback Template

### Summary
[Overview of the changes and overall assessment]

### Issues Found
- **[Severity]** [Issue description and location]

Severity levels: Critical, Major, Minor, Suggestion

### Approval Status
- [ ] Approve
- [ ] Approve with comments
- [ ] Request changes

---

Begin your review below:"""


def render_pr_review(args: Dict[str, str]) -> RenderedPrompt:
    """
    Render the PR review checklist.

    Args:
        args: Optional "prNumber" and "focus" values

    Returns:
        RenderedPrompt with a single user message
    """
    focus = args.get("focus") or "all aspects"
    focus_note = (
        f"\nPay special attention to {focus}-related concerns.\n"
        if focus != "all aspects"
        else ""
    )

    text = _PR_REVIEW_TEMPLATE.format(
        pr_number=args.get("prNumber") or "[PR Number]",
        focus=focus,
        focus_note=focus_note,
    )
    return RenderedPrompt(messages=[PromptMessage(role="user", content=text)])


class ReviewPrompts:
    name = "review"

    def register_all(self, registry: CapabilityRegistry) -> None:
        registry.register_prompt(Prompt(
            name=PR_REVIEW_PROMPT,
            description="Structured template for conducting comprehensive pull request reviews",
            arguments=(
                PromptArgument(name="prNumber", description="Pull request number"),
                PromptArgument(
                    name="focus",
                    description="Specific area to focus on (security, performance, style, etc.)",
                ),
            ),
            renderer=render_pr_review,
        ))
