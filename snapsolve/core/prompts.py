"""Prompt text for the extraction, solve and debug calls."""
import json
from typing import List

from .models import ImageBlock, ProblemInfo, TextBlock

EXTRACTION_SYSTEM_PROMPT = (
    "You are an expert coding problem extractor. Your task is to accurately extract "
    "programming problems from screenshots and return them in a structured format."
)

EXTRACTION_INSTRUCTION = """Based on these screenshots, extract the following information:
1. Problem title
2. Complete problem description
3. Input format
4. Output format
5. Constraints
6. Examples (with inputs and expected outputs)
7. Any additional notes or hints

Return ONLY a JSON object with the keys "title", "description", "input_format",
"output_format", "constraints", "examples" (a list of objects with "input" and
"output") and "notes"."""

ERROR_EXTRACTION_SYSTEM_PROMPT = (
    "You are an expert at reading compiler output, test runners and online judges. "
    "Report exactly what went wrong, without proposing fixes."
)

ERROR_EXTRACTION_INSTRUCTION = """The first screenshots show a programming problem, the last ones show
the result of running a solution to it. Describe precisely which error, failing test case,
wrong output or exceeded limit is visible, quoting messages and expected versus actual values verbatim."""


def extraction_intro(language: str) -> str:
    return (
        "I'm going to show you screenshots of a programming problem. Please extract and understand "
        "the problem statement, requirements, constraints, and any examples provided. "
        f"The programming language being used is {language}."
    )


def build_extraction_parts(images: List[ImageBlock], language: str) -> list:
    return [TextBlock(extraction_intro(language)), *images, TextBlock(EXTRACTION_INSTRUCTION)]


def build_error_extraction_parts(images: List[ImageBlock], language: str) -> list:
    return [
        TextBlock(f"The solution below was written in {language}."),
        *images,
        TextBlock(ERROR_EXTRACTION_INSTRUCTION),
    ]


def format_problem_text(problem: ProblemInfo) -> str:
    """Render a ProblemInfo as plain text, skipping empty sections."""
    sections = [f"Title: {problem.title or 'Unknown Problem'}", f"Description:\n{problem.description}"]
    if problem.input_format:
        sections.append(f"Input Format:\n{problem.input_format}")
    if problem.output_format:
        sections.append(f"Output Format:\n{problem.output_format}")
    if problem.constraints:
        sections.append(f"Constraints:\n{problem.constraints}")
    if problem.examples:
        examples = [{"input": e.input, "output": e.output} for e in problem.examples]
        sections.append(f"Examples:\n{json.dumps(examples, indent=2)}")
    if problem.notes:
        sections.append(f"Notes:\n{problem.notes}")
    return "\n\n".join(sections)


def solve_system_prompt(language: str) -> str:
    return (
        f"You are an expert {language} programmer helping to solve coding problems. "
        "Provide detailed explanations and optimal solutions."
    )


def build_solve_parts(problem: ProblemInfo, language: str) -> list:
    return [TextBlock(f"""I need to solve the following coding problem in {language}:

{format_problem_text(problem)}

Please provide:
1. A detailed explanation of your approach and reasoning
2. A step-by-step solution
3. The complete code solution in {language}
4. Time and space complexity analysis
5. Any edge cases or optimizations to consider""")]


def debug_system_prompt(language: str) -> str:
    return (
        f"You are an expert {language} debugger. Help fix errors and bugs in coding solutions, "
        "explaining your reasoning clearly."
    )


def build_debug_parts(problem: ProblemInfo, solution: str, error_description: str, language: str) -> list:
    return [TextBlock(f"""I'm trying to solve this coding problem in {language}:

{format_problem_text(problem)}

My current solution is:
```{language}
{solution}
```

I'm facing the following error or test failure:
```
{error_description}
```

Please help debug my solution by:
1. Identifying the specific issues in my code
2. Explaining what's causing the error/failure
3. Providing a corrected solution
4. Explaining your changes and why they fix the problem""")]
