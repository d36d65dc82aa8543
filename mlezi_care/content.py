"""
Static content shown by the dashboard and sent to the model.
"""

from .models import Message, ToolPanel

SYSTEM_INSTRUCTION = """You are Mlezi, an AI companion from MleziCare. Your role is to be an empathetic, supportive, and knowledgeable guide for parents and guardians of persons with disabilities in Africa.

Your personality is:
- Empathetic and Understanding: Always validate the user's feelings. Use phrases like, "That sounds incredibly challenging," or "It's completely understandable that you feel that way."
- Patient and Calm: Maintain a reassuring and gentle tone.
- Knowledgeable but Humble: Provide practical advice, resources, and coping strategies. If you don't know something, admit it and offer to find information.
- Culturally Sensitive: Be aware of the diverse cultural contexts in Africa. Avoid making broad generalizations.
- Encouraging and Hopeful: Focus on strengths, resilience, and small, manageable steps.

Your primary functions are:
1.  **Emotional Support:** Act as a safe space for users to vent, share their struggles, and celebrate their victories.
2.  **Information & Resource Hub:** Provide information on specific disabilities, suggest local support networks (when possible, otherwise general types of support), and explain therapeutic techniques in simple terms.
3.  **Self-Care Advocate:** Gently remind users of the importance of their own well-being. Suggest simple, accessible self-care practices.
4.  **Coping Strategy Coach:** Teach practical, evidence-based techniques for managing stress, anxiety, and burnout (e.g., mindfulness, breathing exercises, grounding techniques).

Interaction Guidelines:
- Start conversations with a warm, welcoming tone.
- Use open-ended questions to encourage sharing (e.g., "How are you feeling today?", "What's been on your mind?").
- When a user shares a problem, first validate their feelings, then explore the situation before offering solutions.
- Keep responses concise and easy to read. Use formatting like lists and bold text.
- If the user expresses thoughts of self-harm or harming others, immediately provide crisis support information and urge them to contact a professional. This is critical.
"""

GREETING = (
    "Hello, I'm Mlezi, your personal wellness companion. How are you feeling "
    "today? Feel free to share what's on your mind."
)

FALLBACK_REPLY = (
    "I'm having a little trouble connecting right now. Please try again in a moment."
)

CLIENT_INIT_ERROR = "Failed to initialize the AI model. Please check the API key."

JOURNAL_PROMPTS = (
    "What is one thing that brought you a moment of peace today?",
    "Describe a challenge you faced recently and how you navigated it.",
    "What are you grateful for right now, big or small?",
    "If you could give your past self some advice, what would it be?",
    "What's a small step you can take this week to care for yourself?",
    "Write about a person who has supported you and what they mean to you.",
)

# key -> (emoji, label, chart bar height in percent)
MOODS = {
    "happy": ("😊", "Happy", 100),
    "neutral": ("😐", "Neutral", 70),
    "sad": ("😢", "Sad", 40),
    "anxious": ("😟", "Anxious", 55),
}

EMPTY_DAY_HEIGHT = 5

TOOLS = {
    "breathing": ToolPanel(
        id="breathing",
        title="Box Breathing",
        summary="Calm your mind with a guided breathing exercise.",
        action="Start Exercise",
        heading="Box Breathing",
        body=[
            "A simple technique to calm your nervous system. Follow the animation.",
            "Inhale for 4s, Hold for 4s, Exhale for 4s, Hold for 4s. Repeat.",
        ],
    ),
    "grounding": ToolPanel(
        id="grounding",
        title="5-4-3-2-1 Grounding",
        summary="Reconnect with the present moment using your senses.",
        action="Begin Grounding",
        heading="5-4-3-2-1 Grounding",
        body=[
            "Use your senses to connect with the present moment.",
            "Acknowledge 5 things you see around you.",
            "Acknowledge 4 things you can touch.",
            "Acknowledge 3 things you can hear.",
            "Acknowledge 2 things you can smell.",
            "Acknowledge 1 thing you can taste.",
        ],
    ),
    "affirmations": ToolPanel(
        id="affirmations",
        title="Positive Affirmations",
        summary="A reminder of your strength and resilience.",
        action="View Affirmation",
        heading="Positive Affirmation",
        body=[
            "Repeat this to yourself, and believe it.",
            '"I am resilient, capable, and doing the best I can. I am enough."',
        ],
    ),
    "crisis": ToolPanel(
        id="crisis",
        title="Crisis Support",
        summary="Immediate resources if you are in distress.",
        action="Get Help Now",
        heading="Crisis Support",
        warning=(
            "If you are in immediate danger or distress, please reach out. "
            "You are not alone."
        ),
        body=[
            "These resources are a starting point. Contact a local professional "
            "for immediate help.",
            "Befrienders Africa: A network of emotional support centers across Africa.",
            "Local Emergency Services: Contact your local police or hospital.",
            'Find a Helpline: Search online for "mental health helpline [your country]".',
        ],
    ),
}


def seed_messages() -> list[Message]:
    """Return a fresh conversation log holding only the greeting."""
    return [Message(sender="model", text=GREETING)]


def mood_message(mood: str) -> str:
    return f"I'm feeling {mood}."


def mood_prompt(mood: str) -> str:
    return (
        f"I've just logged my mood as {mood}. Can you give me a brief, "
        "supportive thought for the day based on that?"
    )


def journal_entry_prefix(prompt: str) -> str:
    return f'Regarding the prompt "{prompt}": '
