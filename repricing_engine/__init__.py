"""
Moteur de repricing IA (pricing B2C / Amazon / revendeurs).

Ce package contient :
- la configuration métier du moteur (seuils de marge, bornes du mode "safe"),
- la résolution des snapshots de prix et le simulateur,
- le moteur de règles et le ledger des brouillons de prix,
- le conseil tarifaire, la comparaison concurrentielle et le catalogue,
- les interfaces vers la base de données (Supabase) et le serveur JSON.
"""
