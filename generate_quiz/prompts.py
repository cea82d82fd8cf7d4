QUESTION_FORMAT = """
Each question must be a JSON object with the following structure:

1. "question" - A clear, standalone question string.
2. "selectOptions" - An array of exactly 4 distinct answer choices (strings).
3. "answer" - A string that exactly matches one of the entries in "selectOptions".

Output format: a single JSON array containing only the question objects.

Example:

```json
[
 {
  "question": "What is the main purpose of dependency injection in software architecture?",
  "selectOptions": ["Improve testability", "Speed up execution", "Reduce memory usage", "Handle UI updates"],
  "answer": "Improve testability"
 }
]
```
"""

GUIDELINES = """
Guidelines:
- Do not copy text directly from the source.
- Do not include any references to the file, document, page or its origin in the questions.
- Do not include any introductory text, explanations, or markdown outside the JSON.
- Ensure questions are moderately complex and require a thoughtful understanding of the material.
- Cover a diverse range of concepts within the source.
"""


def build_document_prompt(num_questions, source_name, notes_text=None):
    source = f"the provided file {source_name}"
    prompt = f"""
You are an expert question designer creating challenging, high-quality multiple-choice questions for a quiz system.

Based solely on the content of {source}, generate exactly {num_questions} multiple-choice questions (MCQs).
{GUIDELINES}
{QUESTION_FORMAT}
"""
    if notes_text:
        prompt += f"\nCONTENT OF {source_name}:\n{notes_text}\n"
    return prompt.strip()


def build_url_prompt(num_questions, url):
    return f"""
You are an expert question designer creating challenging, high-quality multiple-choice questions for a quiz system.

Based solely on the content published at {url}, generate exactly {num_questions} multiple-choice questions (MCQs).
{GUIDELINES}
{QUESTION_FORMAT}
""".strip()
