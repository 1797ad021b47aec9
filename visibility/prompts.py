"""Follow-up instructions sent to providers after the raw completion."""

# How each provider is told to shape the extraction reply
JSON_OBJECT_FORMAT = (
    'Respond with a single JSON object with one key, "brands", which is an array '
    'of objects with keys "brandName", "mentions", and "sentiment".'
)

FENCED_JSON_FORMAT = (
    "Respond with a valid JSON object inside a ```json code block. The JSON object "
    'should have one key, "brands", which is an array of objects with keys '
    '"brandName", "mentions", and "sentiment".'
)

# Schema-constrained providers get the shape from the request itself
SCHEMA_FORMAT = "Ensure all brands from my list are in your JSON response."


def build_analysis_prompt(text: str, brands: list[str], output_format: str) -> str:
    """Ask for every brand in `text` with mention counts and sentiment.

    Configured brands that do not appear must be reported as 'Not Mentioned'
    with 0 mentions; brands outside the list are reported too.
    """
    return (
        "Analyze the following text. Identify ALL brand names mentioned, including "
        "brands that are not in my list. For each, count mentions and determine "
        "sentiment ('Positive', 'Neutral', 'Negative'). If a brand from my list "
        f"({', '.join(brands)}) isn't mentioned, report it as 'Not Mentioned' with "
        f"0 mentions. {output_format} Text: --- {text} ---"
    )


def build_question_prompt(text: str, question: str) -> str:
    return (
        f'Based ONLY on the text provided below, answer the question: "{question}". '
        f"If the information is not in the text, state that. Text: --- {text} ---"
    )
