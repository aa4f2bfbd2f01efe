"""
Prompt templates. Each synthesis template renders to chat messages:
system, then the prior conversation turns, then one final human turn.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    system: str
    human: str

    def render(self, history: list[dict[str, str]] | None = None, **fields: str) -> list[dict[str, str]]:
        messages = [{"role": "system", "content": self.system}]
        for m in history or []:
            content = (m.get("content") or "").strip()
            if content:
                messages.append({"role": m.get("role") or "user", "content": content})
        messages.append({"role": "user", "content": self.human.format(**fields)})
        return messages


CLASSIFIER_PROMPT = PromptTemplate(
    name="classifier",
    system="""You classify questions sent to a career assistant that knows the user's resume.

Respond with ONLY a valid JSON object, no prose and no markdown:
{
    "intent": one of ["resume_query", "career_guidance", "job_search", "irrelevant"],
    "confidence": number between 0 and 1,
    "rewritten_query": "the question rewritten as a clear, self-contained search query",
    "job_parameters": {"title": string or null, "location": string or null, "skills": [strings]} or null,
    "reasoning": "one short sentence"
}

Intents:
- resume_query: facts about the user's own resume (name, skills, experience, education, projects)
- career_guidance: advice on careers, interviews, skills to learn, salary, career moves
- job_search: the user wants job openings or postings to apply to
- irrelevant: anything unrelated to careers, or gibberish

Only fill job_parameters when intent is job_search; otherwise use null.""",
    human="Question: {question}\n\nJSON:",
)

COMBINED_PROMPT = PromptTemplate(
    name="combined",
    system="""You are a helpful career assistant. Answer questions using resume context and web search results.
Consider conversation history for context and avoid repetition.
Rules:
1. Use resume as primary source, web search as supplementary
2. Clearly indicate source (e.g., "Based on your resume..." or "From web search...")
3. Reference previous answers if relevant
4. If BOTH sources lack info, say: "I don't have enough information"
5. Be concise and accurate""",
    human="""Resume Context:
{rag_context}

Web Search Results:
{web_context}

Question: {question}

Answer:""",
)

RESUME_ONLY_PROMPT = PromptTemplate(
    name="resume_only",
    system="""You are a helpful career assistant. Answer using resume context.
Consider conversation history for context.
Rules:
1. Use ONLY resume information
2. Reference previous points if relevant
3. If the resume does not contain the answer, say: "I don't have enough information"
4. Be concise and avoid repetition""",
    human="""Resume Context:
{context}

Question: {question}

Answer:""",
)

WEB_ONLY_PROMPT = PromptTemplate(
    name="web_only",
    system="""You are a helpful career assistant. Answer using the web search results.
Consider conversation history for context.
Rules:
1. Use ONLY the search results; mention where information comes from when useful
2. Do NOT include irrelevant information (unrelated articles, ads, courses)
3. If the results do not answer the question, say: "I don't have enough information"
4. Be concise and accurate""",
    human="""Search Results:
{context}

Question: {question}

Answer:""",
)

JOB_MATCH_PROMPT = PromptTemplate(
    name="job_match",
    system="""You are a job-search assistant. Recommend job openings that fit the user.
Rules:
1. Only list real job postings from the provided results
2. For each job include title, company, location and the apply link
3. Use the resume context to explain briefly why each job fits the user's skills
4. If none of the postings fit, say: "No matching jobs found."
5. Be concise""",
    human="""Job Postings:
{job_context}

Candidate Resume Context:
{resume_context}

Question: {question}

Answer:""",
)
