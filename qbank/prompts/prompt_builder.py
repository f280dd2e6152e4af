# qbank/prompts/prompt_builder.py


_EXAMPLE_INPUT = (
    "1   a   List out the features of Spring Framework .   L 2   CO 1   [ 7 M]  "
    "b   Explain in detail about Setter injection with an example .   L 2   CO 1   [ 7 M]  "
    "OR  2   a   Discuss about Dependency injection .   L 2   CO 1   [ 7 M]  "
    "UNIT – II  3   a   Explain about Auto Wiring.   L2   CO2   [7M]"
)

_EXAMPLE_OUTPUT = """[
  {"number": 1, "identifier": "1a", "content": "List out the features of Spring Framework.", "marks": 7},
  {"number": 1, "identifier": "1b", "content": "Explain in detail about Setter injection with an example.", "marks": 7},
  {"number": 2, "identifier": "2a", "content": "Discuss about Dependency injection.", "marks": 7},
  {"number": 3, "identifier": "3a", "content": "Explain about Auto Wiring.", "marks": 7}
]"""


def build_extraction_prompt(paper_text: str) -> str:
    """
    Build the question extraction prompt for one paper.

    The system prompt is sent separately by the LLM client.
    """

    prompt = f"""
For each question in the paper, provide:

- number: numerical question number (e.g. 1, 2)
- identifier: the full question identifier (e.g. "1a", "Question 2")
- content: the full text of the question
- marks: number of marks (null if not mentioned)

EXAMPLE INPUT:
{_EXAMPLE_INPUT}

EXAMPLE OUTPUT:
{_EXAMPLE_OUTPUT}

PAPER TEXT:
----------------
{paper_text}
----------------

JSON ARRAY:
"""

    return prompt.strip()
