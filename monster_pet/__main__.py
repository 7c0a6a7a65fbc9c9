from monster_pet.scripts.cli import main

raise SystemExit(main())
