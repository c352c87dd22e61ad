# app/services/catalog.py
"""
Curated recommendation catalog.

Small hand-maintained tables the rule and similarity sources draw from:
workouts, meals, mindfulness practices, goal templates, and peer cohorts
(profiles with the items that worked for them). Item ids are stable; feedback
and exclusions refer to them.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

DIFFICULTY_ORDER = ("beginner", "intermediate", "advanced")

# fitness level -> highest workout difficulty we recommend
MAX_DIFFICULTY = {
    "beginner": "beginner",
    "beginner-plus": "intermediate",
    "intermediate": "intermediate",
    "advanced": "advanced",
}

# allergy spellings -> allergen tag used on meals
ALLERGEN_ALIASES = {
    "peanut": "nuts", "peanuts": "nuts", "nut": "nuts", "nuts": "nuts", "tree-nuts": "nuts",
    "milk": "dairy", "lactose": "dairy", "dairy": "dairy",
    "wheat": "gluten", "gluten": "gluten",
    "egg": "eggs", "eggs": "eggs",
    "fish": "fish", "shellfish": "shellfish", "shrimp": "shellfish",
    "soy": "soy", "soya": "soy",
}

# ---- Workouts ----
# implication tags: which constraint implications rule an item out
WORKOUT_CONTRAINDICATIONS = {
    "low-impact": {"high-impact"},
    "avoid-jumping": {"jumping"},
    "avoid-max-effort": {"max-effort"},
    "avoid-heavy-isometric": {"heavy-isometric"},
    "avoid-heavy-spinal-loading": {"spinal-loading"},
    "avoid-cold-air-cardio": {"outdoor-cardio"},
}

WORKOUTS: List[Dict[str, Any]] = [
    {"id": "wk-brisk-walk", "name": "Brisk Walk Intervals", "type": "cardio", "difficulty": "beginner",
     "duration_min": 30, "equipment": [], "tags": ["outdoor-cardio"],
     "goals": ["weight-loss", "general-health", "endurance"],
     "exercises": ["5 min easy walk", "6 x (3 min brisk / 1 min easy)", "5 min cool-down"]},
    {"id": "wk-cycling-z2", "name": "Zone 2 Cycling", "type": "cardio", "difficulty": "intermediate",
     "duration_min": 45, "equipment": ["bike"], "tags": [],
     "goals": ["endurance", "weight-loss", "general-health"],
     "exercises": ["10 min warm-up", "30 min conversational pace", "5 min spin-down"]},
    {"id": "wk-tempo-run", "name": "Tempo Run", "type": "cardio", "difficulty": "advanced",
     "duration_min": 40, "equipment": [], "tags": ["high-impact", "outdoor-cardio"],
     "goals": ["endurance", "weight-loss"],
     "exercises": ["10 min jog", "20 min comfortably hard", "10 min jog"]},
    {"id": "wk-hiit-bodyweight", "name": "Bodyweight HIIT", "type": "hiit", "difficulty": "intermediate",
     "duration_min": 20, "equipment": [], "tags": ["high-impact", "jumping", "max-effort"],
     "goals": ["weight-loss", "endurance"],
     "exercises": ["jump squats", "burpees", "mountain climbers", "high knees", "40s on / 20s off x 4 rounds"]},
    {"id": "wk-low-impact-hiit", "name": "Low-Impact Circuit", "type": "hiit", "difficulty": "beginner",
     "duration_min": 20, "equipment": [], "tags": [],
     "goals": ["weight-loss", "general-health"],
     "exercises": ["step-back lunges", "wall push-ups", "glute bridges", "standing marches", "3 rounds"]},
    {"id": "wk-full-body-strength", "name": "Full-Body Strength", "type": "strength", "difficulty": "intermediate",
     "duration_min": 45, "equipment": ["dumbbells"], "tags": ["spinal-loading"],
     "goals": ["muscle-gain", "strength", "weight-loss"],
     "exercises": ["goblet squat 3x10", "dumbbell row 3x10", "romanian deadlift 3x8", "push-ups 3x8-12"]},
    {"id": "wk-barbell-strength", "name": "Barbell Strength Block", "type": "strength", "difficulty": "advanced",
     "duration_min": 60, "equipment": ["barbell", "rack"], "tags": ["spinal-loading", "max-effort", "heavy-isometric"],
     "goals": ["strength", "muscle-gain"],
     "exercises": ["back squat 5x5", "bench press 5x5", "deadlift 3x5"]},
    {"id": "wk-resistance-bands", "name": "Resistance Band Basics", "type": "resistance", "difficulty": "beginner",
     "duration_min": 25, "equipment": ["resistance-bands"], "tags": [],
     "goals": ["muscle-gain", "strength", "general-health"],
     "exercises": ["band rows 3x12", "band chest press 3x12", "band squats 3x15", "pallof press 2x10"]},
    {"id": "wk-core-stability", "name": "Core Stability", "type": "strength", "difficulty": "beginner",
     "duration_min": 15, "equipment": [], "tags": [],
     "goals": ["general-health", "strength"],
     "exercises": ["dead bug 3x8", "side plank 3x20s", "bird dog 3x8", "glute bridge 3x12"]},
    {"id": "wk-yoga-flow", "name": "Gentle Yoga Flow", "type": "yoga", "difficulty": "beginner",
     "duration_min": 30, "equipment": ["mat"], "tags": [],
     "goals": ["flexibility", "general-health"],
     "exercises": ["cat-cow", "downward dog", "low lunge", "child's pose", "supine twist"]},
    {"id": "wk-power-yoga", "name": "Power Yoga", "type": "yoga", "difficulty": "intermediate",
     "duration_min": 45, "equipment": ["mat"], "tags": ["heavy-isometric"],
     "goals": ["flexibility", "strength"],
     "exercises": ["sun salutation B x5", "warrior sequence", "chair pose holds", "crow prep"]},
    {"id": "wk-mobility", "name": "Full-Body Mobility", "type": "stretching", "difficulty": "beginner",
     "duration_min": 15, "equipment": [], "tags": [],
     "goals": ["flexibility", "general-health"],
     "exercises": ["hip 90/90", "thoracic rotations", "hamstring floss", "ankle circles"]},
    {"id": "wk-swim-easy", "name": "Easy Swim", "type": "cardio", "difficulty": "beginner",
     "duration_min": 30, "equipment": ["pool"], "tags": [],
     "goals": ["endurance", "general-health", "weight-loss"],
     "exercises": ["200m easy", "8 x 50m steady", "100m cool-down"]},
]

# ---- Meals ----

MEALS: List[Dict[str, Any]] = [
    {"id": "ml-greek-yogurt-bowl", "name": "Greek Yogurt + Berries + Oats", "meal": "breakfast",
     "calories": 380, "protein_g": 28, "carbs_g": 45, "fat_g": 9,
     "diet_tags": ["vegetarian", "halal", "kosher"], "allergens": ["dairy", "gluten"],
     "goals": ["muscle-gain", "general-health", "weight-loss"], "glycemic": "low", "sodium": "low",
     "ingredients": ["1 cup Greek yogurt", "1/2 cup berries", "1/4 cup oats", "cinnamon"]},
    {"id": "ml-tofu-scramble", "name": "Tofu Scramble + Toast", "meal": "breakfast",
     "calories": 420, "protein_g": 26, "carbs_g": 38, "fat_g": 17,
     "diet_tags": ["vegan", "vegetarian", "dairy-free", "nut-free", "halal", "kosher"], "allergens": ["soy", "gluten"],
     "goals": ["muscle-gain", "general-health"], "glycemic": "medium", "sodium": "normal",
     "ingredients": ["6 oz firm tofu", "spinach", "turmeric", "2 slices whole-grain toast"]},
    {"id": "ml-veggie-omelette", "name": "Veggie Omelette", "meal": "breakfast",
     "calories": 350, "protein_g": 24, "carbs_g": 8, "fat_g": 24,
     "diet_tags": ["vegetarian", "gluten-free", "nut-free", "keto", "paleo", "halal", "kosher"], "allergens": ["eggs"],
     "goals": ["weight-loss", "muscle-gain"], "glycemic": "low", "sodium": "normal",
     "ingredients": ["3 eggs", "peppers", "onion", "spinach", "olive oil"]},
    {"id": "ml-overnight-oats", "name": "Overnight Oats", "meal": "breakfast",
     "calories": 400, "protein_g": 14, "carbs_g": 62, "fat_g": 11,
     "diet_tags": ["vegan", "vegetarian", "dairy-free", "halal", "kosher"], "allergens": ["gluten", "nuts"],
     "goals": ["endurance", "general-health", "weight-gain"], "glycemic": "medium", "sodium": "low",
     "ingredients": ["1/2 cup oats", "plant milk", "1 tbsp chia", "1 tbsp almond butter", "berries"]},
    {"id": "ml-chicken-quinoa-bowl", "name": "Chicken Quinoa Bowl", "meal": "lunch",
     "calories": 560, "protein_g": 45, "carbs_g": 52, "fat_g": 16,
     "diet_tags": ["gluten-free", "dairy-free", "nut-free", "halal"], "allergens": [],
     "goals": ["muscle-gain", "weight-loss", "general-health"], "glycemic": "low", "sodium": "normal",
     "ingredients": ["6 oz chicken breast", "1 cup cooked quinoa", "mixed greens", "lemon vinaigrette"]},
    {"id": "ml-lentil-soup", "name": "Lentil + Vegetable Soup", "meal": "lunch",
     "calories": 430, "protein_g": 24, "carbs_g": 62, "fat_g": 8,
     "diet_tags": ["vegan", "vegetarian", "gluten-free", "dairy-free", "nut-free", "halal", "kosher"], "allergens": [],
     "goals": ["weight-loss", "general-health"], "glycemic": "low", "sodium": "low",
     "ingredients": ["1 cup cooked lentils", "carrots", "celery", "tomatoes", "cumin"]},
    {"id": "ml-tuna-wrap", "name": "Tuna Wrap", "meal": "lunch",
     "calories": 480, "protein_g": 38, "carbs_g": 40, "fat_g": 17,
     "diet_tags": ["dairy-free", "nut-free", "halal", "kosher"], "allergens": ["fish", "gluten"],
     "goals": ["muscle-gain", "weight-loss"], "glycemic": "medium", "sodium": "normal",
     "ingredients": ["1 whole-grain wrap", "1 can tuna", "lettuce", "tomato", "mustard"]},
    {"id": "ml-chickpea-salad", "name": "Mediterranean Chickpea Salad", "meal": "lunch",
     "calories": 470, "protein_g": 18, "carbs_g": 55, "fat_g": 20,
     "diet_tags": ["vegan", "vegetarian", "gluten-free", "dairy-free", "nut-free", "halal", "kosher"], "allergens": [],
     "goals": ["general-health", "weight-loss"], "glycemic": "low", "sodium": "low",
     "ingredients": ["1 cup chickpeas", "cucumber", "tomato", "red onion", "olive oil", "lemon"]},
    {"id": "ml-salmon-rice-veg", "name": "Salmon + Rice + Greens", "meal": "dinner",
     "calories": 620, "protein_g": 42, "carbs_g": 55, "fat_g": 24,
     "diet_tags": ["gluten-free", "dairy-free", "nut-free", "halal", "kosher"], "allergens": ["fish"],
     "goals": ["muscle-gain", "endurance", "general-health"], "glycemic": "medium", "sodium": "normal",
     "ingredients": ["6 oz salmon", "1 cup cooked rice", "broccoli", "bok choy"]},
    {"id": "ml-turkey-chili", "name": "Turkey + Bean Chili", "meal": "dinner",
     "calories": 540, "protein_g": 44, "carbs_g": 48, "fat_g": 16,
     "diet_tags": ["gluten-free", "dairy-free", "nut-free"], "allergens": [],
     "goals": ["weight-loss", "muscle-gain"], "glycemic": "low", "sodium": "normal",
     "ingredients": ["6 oz lean ground turkey", "kidney beans", "tomatoes", "chili spices"]},
    {"id": "ml-tofu-stir-fry", "name": "Tofu Stir-Fry + Brown Rice", "meal": "dinner",
     "calories": 580, "protein_g": 30, "carbs_g": 70, "fat_g": 18,
     "diet_tags": ["vegan", "vegetarian", "dairy-free", "halal", "kosher"], "allergens": ["soy", "nuts"],
     "goals": ["general-health", "weight-gain", "endurance"], "glycemic": "medium", "sodium": "normal",
     "ingredients": ["6 oz tofu", "stir-fry vegetables", "1 cup brown rice", "cashews", "tamari"]},
    {"id": "ml-steak-sweet-potato", "name": "Steak + Sweet Potato", "meal": "dinner",
     "calories": 700, "protein_g": 50, "carbs_g": 50, "fat_g": 30,
     "diet_tags": ["gluten-free", "dairy-free", "nut-free", "paleo"], "allergens": [],
     "goals": ["muscle-gain", "weight-gain", "strength"], "glycemic": "medium", "sodium": "normal",
     "ingredients": ["6 oz sirloin", "1 medium sweet potato", "asparagus", "olive oil"]},
    {"id": "ml-apple-almonds", "name": "Apple + Almonds", "meal": "snack",
     "calories": 250, "protein_g": 7, "carbs_g": 28, "fat_g": 14,
     "diet_tags": ["vegan", "vegetarian", "gluten-free", "dairy-free", "paleo", "halal", "kosher"], "allergens": ["nuts"],
     "goals": ["general-health", "weight-loss"], "glycemic": "low", "sodium": "low",
     "ingredients": ["1 apple", "1 oz almonds"]},
    {"id": "ml-hummus-veg", "name": "Hummus + Veggie Sticks", "meal": "snack",
     "calories": 200, "protein_g": 7, "carbs_g": 22, "fat_g": 10,
     "diet_tags": ["vegan", "vegetarian", "gluten-free", "dairy-free", "nut-free", "halal", "kosher"], "allergens": [],
     "goals": ["weight-loss", "general-health"], "glycemic": "low", "sodium": "normal",
     "ingredients": ["1/4 cup hummus", "carrots", "cucumber", "bell pepper"]},
    {"id": "ml-protein-shake", "name": "Protein Shake + Banana", "meal": "snack",
     "calories": 300, "protein_g": 28, "carbs_g": 35, "fat_g": 4,
     "diet_tags": ["vegetarian", "gluten-free", "nut-free", "halal", "kosher"], "allergens": ["dairy"],
     "goals": ["muscle-gain", "weight-gain", "strength"], "glycemic": "medium", "sodium": "low",
     "ingredients": ["1 scoop whey protein", "1 banana", "water or milk"]},
]

# ---- Mindfulness ----

MINDFULNESS: List[Dict[str, Any]] = [
    {"id": "mf-box-breathing", "name": "Box Breathing", "kind": "breathing", "focus": ["stress", "anxiety"],
     "duration_min": 5, "experience": "beginner",
     "description": "Inhale 4s, hold 4s, exhale 4s, hold 4s. Repeat for five minutes."},
    {"id": "mf-478-breathing", "name": "4-7-8 Breathing", "kind": "breathing", "focus": ["sleep", "anxiety"],
     "duration_min": 5, "experience": "beginner",
     "description": "Inhale 4s, hold 7s, exhale slowly for 8s. Four to eight cycles before bed."},
    {"id": "mf-body-scan", "name": "Body Scan Meditation", "kind": "meditation", "focus": ["sleep", "stress"],
     "duration_min": 15, "experience": "beginner",
     "description": "Move attention slowly from toes to head, releasing tension in each area."},
    {"id": "mf-pmr", "name": "Progressive Muscle Relaxation", "kind": "relaxation", "focus": ["stress", "sleep"],
     "duration_min": 12, "experience": "beginner",
     "description": "Tense each muscle group for 5s, then release for 20s."},
    {"id": "mf-mindful-walk", "name": "Mindful Walk", "kind": "movement", "focus": ["mood", "stress"],
     "duration_min": 15, "experience": "beginner",
     "description": "Walk outdoors without a phone, noticing five things you see, hear and feel."},
    {"id": "mf-gratitude", "name": "Gratitude Journaling", "kind": "journaling", "focus": ["mood"],
     "duration_min": 5, "experience": "beginner",
     "description": "Write down three specific things that went well today and why."},
    {"id": "mf-loving-kindness", "name": "Loving-Kindness Meditation", "kind": "meditation", "focus": ["mood", "anxiety"],
     "duration_min": 10, "experience": "intermediate",
     "description": "Silently repeat phrases of goodwill toward yourself, then others."},
    {"id": "mf-breath-focus", "name": "Breath-Focus Meditation", "kind": "meditation", "focus": ["general", "stress"],
     "duration_min": 10, "experience": "beginner",
     "description": "Sit comfortably and count breaths from one to ten, restarting when the mind wanders."},
    {"id": "mf-open-monitoring", "name": "Open Monitoring Meditation", "kind": "meditation", "focus": ["general", "anxiety"],
     "duration_min": 20, "experience": "advanced",
     "description": "Observe thoughts and sensations as they arise without following them."},
    {"id": "mf-sleep-wind-down", "name": "Screen-Free Wind-Down", "kind": "sleep-hygiene", "focus": ["sleep"],
     "duration_min": 30, "experience": "beginner",
     "description": "Dim lights and put screens away 30 minutes before a consistent bedtime."},
    {"id": "mf-yoga-nidra", "name": "Yoga Nidra", "kind": "meditation", "focus": ["sleep", "stress"],
     "duration_min": 20, "experience": "intermediate",
     "description": "Guided lying-down relaxation moving through breath, body and imagery."},
    {"id": "mf-micro-breaks", "name": "Hourly Micro-Breaks", "kind": "habit", "focus": ["stress", "general"],
     "duration_min": 2, "experience": "beginner",
     "description": "Stand, stretch and take three slow breaths once every hour of desk work."},
]

# ---- Goals ----
# trigger: (trend family, direction) that makes the template relevant; None = always
GOAL_TEMPLATES: List[Dict[str, Any]] = [
    {"id": "gl-weight-loss-rate", "goal": "weight-loss", "kind": "adjustment",
     "trigger": ("weight", "increasing"), "target": "Reverse weight gain: aim for 0.25-0.5 kg loss per week",
     "timeline_weeks": 8, "rationale": "Weight is trending up while weight-loss is a declared goal."},
    {"id": "gl-weight-loss-maintain", "goal": "weight-loss", "kind": "milestone",
     "trigger": ("weight", "decreasing"), "target": "Keep the current loss rate and add one strength session a week",
     "timeline_weeks": 12, "rationale": "Weight is trending down; protecting lean mass keeps progress sustainable."},
    {"id": "gl-steps-build", "goal": "general-health", "kind": "new",
     "trigger": ("activity", "decreasing"), "target": "Rebuild daily steps by 1,000 per week up to 8,000",
     "timeline_weeks": 6, "rationale": "Daily steps are trending down."},
    {"id": "gl-steps-8k", "goal": "endurance", "kind": "new",
     "trigger": None, "target": "Average 8,000 steps per day",
     "timeline_weeks": 4, "rationale": "A consistent step base supports endurance work."},
    {"id": "gl-sleep-7h", "goal": "general-health", "kind": "new",
     "trigger": ("sleep", "decreasing"), "target": "Protect a 7-hour sleep window on at least 5 nights a week",
     "timeline_weeks": 4, "rationale": "Sleep duration is trending down."},
    {"id": "gl-strength-progress", "goal": "strength", "kind": "milestone",
     "trigger": None, "target": "Add 5% to main lifts every 3 weeks",
     "timeline_weeks": 12, "rationale": "Progressive overload drives strength gains."},
    {"id": "gl-muscle-protein", "goal": "muscle-gain", "kind": "adjustment",
     "trigger": None, "target": "Reach 1.6 g/kg protein daily and train each muscle twice a week",
     "timeline_weeks": 12, "rationale": "Protein intake and training frequency limit muscle gain."},
    {"id": "gl-weight-gain-surplus", "goal": "weight-gain", "kind": "adjustment",
     "trigger": ("weight", "stable"), "target": "Add 250 kcal per day until weight rises 0.25 kg per week",
     "timeline_weeks": 8, "rationale": "Weight is flat while weight-gain is a declared goal."},
    {"id": "gl-flexibility-daily", "goal": "flexibility", "kind": "new",
     "trigger": None, "target": "Ten minutes of mobility work daily",
     "timeline_weeks": 6, "rationale": "Short daily sessions improve range of motion faster than long weekly ones."},
    {"id": "gl-consistency", "goal": "general-health", "kind": "milestone",
     "trigger": None, "target": "Log activity on 5 of 7 days for four consecutive weeks",
     "timeline_weeks": 4, "rationale": "Consistency is the strongest predictor of long-term progress."},
]

# ---- Peer cohorts ----
# (item_id, success_rate) pairs per category for profiles like the cohort's
PEER_COHORTS: List[Dict[str, Any]] = [
    {"id": "cohort-new-walkers", "fitness_level": "beginner", "goals": ["weight-loss", "general-health"],
     "items": {
         "workout": [("wk-brisk-walk", 0.92), ("wk-low-impact-hiit", 0.81), ("wk-mobility", 0.74)],
         "nutrition": [("ml-lentil-soup", 0.85), ("ml-greek-yogurt-bowl", 0.80), ("ml-hummus-veg", 0.77)],
         "mindfulness": [("mf-mindful-walk", 0.83), ("mf-box-breathing", 0.79)],
         "goals": [("gl-steps-build", 0.81), ("gl-consistency", 0.78)],
     }},
    {"id": "cohort-beginner-strength", "fitness_level": "beginner-plus", "goals": ["muscle-gain", "strength"],
     "items": {
         "workout": [("wk-resistance-bands", 0.88), ("wk-core-stability", 0.84), ("wk-full-body-strength", 0.76)],
         "nutrition": [("ml-protein-shake", 0.86), ("ml-chicken-quinoa-bowl", 0.84), ("ml-veggie-omelette", 0.72)],
         "mindfulness": [("mf-breath-focus", 0.70)],
         "goals": [("gl-muscle-protein", 0.82), ("gl-strength-progress", 0.74)],
     }},
    {"id": "cohort-active-cutters", "fitness_level": "intermediate", "goals": ["weight-loss", "muscle-gain"],
     "items": {
         "workout": [("wk-full-body-strength", 0.87), ("wk-hiit-bodyweight", 0.83), ("wk-cycling-z2", 0.78)],
         "nutrition": [("ml-turkey-chili", 0.88), ("ml-chicken-quinoa-bowl", 0.85), ("ml-veggie-omelette", 0.80)],
         "mindfulness": [("mf-box-breathing", 0.76), ("mf-micro-breaks", 0.71)],
         "goals": [("gl-weight-loss-maintain", 0.84), ("gl-muscle-protein", 0.79)],
     }},
    {"id": "cohort-endurance", "fitness_level": "intermediate", "goals": ["endurance", "general-health"],
     "items": {
         "workout": [("wk-cycling-z2", 0.90), ("wk-swim-easy", 0.82), ("wk-mobility", 0.75)],
         "nutrition": [("ml-overnight-oats", 0.87), ("ml-salmon-rice-veg", 0.84)],
         "mindfulness": [("mf-body-scan", 0.78), ("mf-478-breathing", 0.74)],
         "goals": [("gl-steps-8k", 0.86), ("gl-sleep-7h", 0.77)],
     }},
    {"id": "cohort-advanced-athletes", "fitness_level": "advanced", "goals": ["endurance", "strength"],
     "items": {
         "workout": [("wk-tempo-run", 0.89), ("wk-barbell-strength", 0.86), ("wk-power-yoga", 0.73)],
         "nutrition": [("ml-steak-sweet-potato", 0.85), ("ml-salmon-rice-veg", 0.83), ("ml-overnight-oats", 0.80)],
         "mindfulness": [("mf-open-monitoring", 0.72), ("mf-yoga-nidra", 0.76)],
         "goals": [("gl-strength-progress", 0.85)],
     }},
    {"id": "cohort-flexibility", "fitness_level": "beginner-plus", "goals": ["flexibility", "general-health"],
     "items": {
         "workout": [("wk-yoga-flow", 0.91), ("wk-mobility", 0.86), ("wk-core-stability", 0.74)],
         "nutrition": [("ml-chickpea-salad", 0.79), ("ml-tofu-scramble", 0.75)],
         "mindfulness": [("mf-yoga-nidra", 0.84), ("mf-loving-kindness", 0.77)],
         "goals": [("gl-flexibility-daily", 0.88)],
     }},
    {"id": "cohort-gainers", "fitness_level": "beginner-plus", "goals": ["weight-gain", "muscle-gain"],
     "items": {
         "workout": [("wk-full-body-strength", 0.85), ("wk-resistance-bands", 0.80)],
         "nutrition": [("ml-steak-sweet-potato", 0.86), ("ml-protein-shake", 0.84), ("ml-tofu-stir-fry", 0.78)],
         "mindfulness": [("mf-breath-focus", 0.68)],
         "goals": [("gl-weight-gain-surplus", 0.83), ("gl-muscle-protein", 0.80)],
     }},
    {"id": "cohort-stressed-desk", "fitness_level": "beginner", "goals": ["general-health"],
     "items": {
         "workout": [("wk-mobility", 0.84), ("wk-yoga-flow", 0.80), ("wk-brisk-walk", 0.79)],
         "nutrition": [("ml-chickpea-salad", 0.76), ("ml-apple-almonds", 0.74)],
         "mindfulness": [("mf-micro-breaks", 0.88), ("mf-box-breathing", 0.85), ("mf-sleep-wind-down", 0.80)],
         "goals": [("gl-sleep-7h", 0.79), ("gl-consistency", 0.76)],
     }},
]


def index_by_id(items: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    return {it["id"]: it for it in items}


CATEGORY_ITEMS: Dict[str, Dict[str, Dict[str, Any]]] = {
    "workout": index_by_id(WORKOUTS),
    "nutrition": index_by_id(MEALS),
    "mindfulness": index_by_id(MINDFULNESS),
    "goals": index_by_id(GOAL_TEMPLATES),
}


def difficulty_allowed(item_difficulty: str, fitness_level: str) -> bool:
    ceiling = MAX_DIFFICULTY.get(fitness_level, "beginner")
    return DIFFICULTY_ORDER.index(item_difficulty) <= DIFFICULTY_ORDER.index(ceiling)


def normalize_allergens(allergies: List[str] | Tuple[str, ...]) -> set[str]:
    out = set()
    for a in allergies:
        key = str(a).strip().lower().replace(" ", "-")
        out.add(ALLERGEN_ALIASES.get(key, key))
    return out
