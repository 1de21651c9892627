"""
Prompt constants for game analysis.

The user prompt is a ``str.format`` template; literal braces in the JSON
example are doubled.
"""

from blueolive.models.enums import PlayerColor


# ============================================================================
# GAME ANALYSIS PROMPTS
# ============================================================================

GAME_ANALYSIS_SYSTEM_PROMPT = """You are an expert chess analyst and personal coach. Return ONLY a valid JSON object, no markdown fences and no other text."""

GAME_ANALYSIS_PROMPT_TEMPLATE = """Analyze the following chess game from the perspective of {player_name} (playing as {player_side}).

## Game Information
- White: {white}
- Black: {black}
- Result: {result}
- Event: {event}
- Date: {date}
- **Player being analyzed**: {player_name} ({player_side}) - {player_outcome}

## PGN
{pgn}

## Instructions
Analyze this chess game specifically for {player_name} ({player_side}). Focus on their moves, decisions, and areas for improvement. {opponent_side} is the opponent.

Respond with a JSON object in this exact format:

{{
  "summary": "A 2-3 sentence overview focusing on how {player_name} played, including opening choice, key themes, and outcome from their perspective",
  "phases": [
    {{
      "name": "Opening",
      "moves": "1-15",
      "evaluation": "Assessment of {player_name}'s play in this phase",
      "key_ideas": ["What {player_name} did well or poorly"]
    }}
  ],
  "key_moments": [
    {{
      "move_number": 15,
      "move": "Nxe5",
      "fen": "",
      "evaluation": "+1.5",
      "comment": "Explanation of {player_name}'s decision and its impact",
      "is_mistake": false
    }}
  ],
  "recommendations": ["Specific improvement for {player_name}"]
}}

Requirements:
- Include 3 phases: Opening, Middlegame, Endgame (or fewer if the game ended early)
- Identify 3-5 key moments focusing on {player_name}'s moves
- Provide 3-5 actionable recommendations specifically for {player_name} to improve
- Focus on conceptual understanding and patterns {player_name} should recognize
- Be specific with move numbers
- Address {player_name} directly in recommendations (e.g., "Consider developing..." not "{player_side} should...")

Respond with ONLY the JSON object, no other text."""


def player_outcome(result: str, player_color: PlayerColor) -> str:
    """Describe the result from the analysed player's side: won, lost or drew."""
    if result == "1-0":
        return "won" if player_color == PlayerColor.WHITE else "lost"
    if result == "0-1":
        return "won" if player_color == PlayerColor.BLACK else "lost"
    # Draws and unfinished games ("*") both read as a draw to the coach
    return "drew"


def build_analysis_prompt(
    pgn: str,
    metadata: dict,
    player_name: str,
    player_color: PlayerColor,
) -> str:
    player_color = PlayerColor(player_color)
    result = metadata.get("result") or "*"
    return GAME_ANALYSIS_PROMPT_TEMPLATE.format(
        player_name=player_name,
        player_side=player_color.value.capitalize(),
        opponent_side=player_color.opponent.value.capitalize(),
        player_outcome=player_outcome(result, player_color),
        white=metadata.get("white") or "Unknown",
        black=metadata.get("black") or "Unknown",
        result=result,
        event=metadata.get("event") or "Unknown",
        date=metadata.get("date") or "Unknown",
        pgn=pgn,
    )
